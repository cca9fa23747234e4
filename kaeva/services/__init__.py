"""Building blocks of the fact-check pipeline: tiers, credentials, media, OCR, model, scoring."""
