"""Cross-cutting utilities: errors, LLM client, CSRF tokens."""
