"""LLM access: OpenRouter client with model fallback, offline demo client, gateway."""
