"""Turn free-form text into records using a language-model extractor."""
