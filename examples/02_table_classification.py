"""
Example 2: Classifying a Table of Field Reports
===============================================

Dataset: 4 short humanitarian field reports and a table of sector definitions.

What this demonstrates:
- Passing categories with descriptions as a DataFrame
- Appending the top prediction to the input table (wide output)
- Requesting per-category probabilities (long output)
- Carrying an identifier column to the front of the result

Set your API key before running:
    export OPENAI_API_KEY="sk-..."
"""

import pandas as pd

from classify_llm import LLMClassifier, classify_table

# ---------------------------------------------------------------------------
# 1. Inputs
# ---------------------------------------------------------------------------

reports = pd.DataFrame(
    {
        "id": [1, 2, 3, 4],
        "content": [
            "Food distribution in border camp delayed by insecurity.",
            "Price inflation accelerates in host communities.",
            "Asylum application processing times decrease.",
            "Reports of family separation at the crossing point.",
        ],
    }
)

sectors = pd.DataFrame(
    {
        "category": ["Protection", "Basic Needs", "Livelihoods", "Procedures"],
        "description": [
            "Risks, incidents, access to territory/asylum, GBV/CP",
            "Shelter, food, WASH, core relief items",
            "Jobs, income, markets, prices",
            "RSD, documentation, processing, status",
        ],
    }
)

clf = LLMClassifier(model="openai/gpt-4o-mini", max_retries=2)

# ---------------------------------------------------------------------------
# 2. Top prediction per row
# ---------------------------------------------------------------------------

wide = classify_table(reports, "content", sectors, id_column="id", classifier=clf)
print(wide[["id", ".pred_category"]].to_string(index=False))

# ---------------------------------------------------------------------------
# 3. Full probability table
# ---------------------------------------------------------------------------

long = classify_table(
    reports,
    "content",
    sectors,
    id_column="id",
    return_probabilities=True,
    classifier=clf,
)
print()
print(long.pivot(index="id", columns=".category", values=".prob").round(2))
