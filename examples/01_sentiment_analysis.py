"""
Example 1: Sentiment Analysis of Product Reviews
================================================

Dataset: 9 hand-picked Amazon-style product reviews across three sentiment classes.

What this demonstrates:
- Classifying a plain list of texts with classify_vector
- Pacing requests in batches with a delay between them
- Measuring accuracy against ground-truth labels

Set your API key before running:
    export OPENAI_API_KEY="sk-..."   # Linux / macOS
    $env:OPENAI_API_KEY="sk-..."     # Windows PowerShell
"""

from classify_llm import LLMClassifier, classify_vector

# ---------------------------------------------------------------------------
# 1. Inline dataset: reviews with ground-truth labels
# ---------------------------------------------------------------------------

DATASET: list[tuple[str, str]] = [
    ("Absolutely love this product! Works exactly as described and arrived on time.", "positive"),
    ("Completely useless. Broke after two days and the seller ignored my refund request.", "negative"),
    ("It's okay. Does what it says but nothing special about it.", "neutral"),
    ("Best purchase I've made this year. The build quality is outstanding!", "positive"),
    ("Very disappointed. The colour looked nothing like the pictures.", "negative"),
    ("Works fine for what I need. Not amazing, not terrible.", "neutral"),
    ("Incredible! My whole family loves it. Highly recommend to everyone.", "positive"),
    ("Junk. Stopped working after a week. Total waste of money.", "negative"),
    ("Pretty average. Gets the job done but there are better options out there.", "neutral"),
]

reviews = [text for text, _ in DATASET]
ground_truth = [label for _, label in DATASET]

# ---------------------------------------------------------------------------
# 2. Run classification, 3 reviews per batch with a 1 second pause
# ---------------------------------------------------------------------------

clf = LLMClassifier(model="openai/gpt-4.1-mini")

print(f"Classifying {len(reviews)} reviews...\n")

predicted = classify_vector(
    reviews,
    categories=["neutral", "positive", "negative"],
    batch_size=3,
    delay=1.0,
    verbose=True,
    classifier=clf,
)

# ---------------------------------------------------------------------------
# 3. Print results
# ---------------------------------------------------------------------------

correct = 0
print(f"{'#':<3} {'Predicted':<10} {'Actual':<10}  Review")
print("-" * 90)

for i, (label, actual) in enumerate(zip(predicted, ground_truth)):
    match = "✓" if label == actual else "✗"
    if label == actual:
        correct += 1
    print(f"{i+1:<3} {label:<10} {actual:<10} {match}  {reviews[i][:60]}…")

print("-" * 90)
print(f"\nAccuracy: {correct}/{len(DATASET)} = {correct / len(DATASET):.0%}")
