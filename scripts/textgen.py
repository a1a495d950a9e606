"""Text-generation clients for cover letters and other caller-side drafting.

A generator exposes ``generate(prompt) -> str`` and raises GenerationError on
network or parsing failure. The client is built once by the entry point
(:func:`build_generator`) and passed to whatever needs it; when no provider is
configured ``build_generator`` returns None and callers use their template
fallback.
"""

import os


class GenerationError(Exception):
    """Text generation failed (network, auth, or unusable response)."""


class OpenAIGenerator:
    """Chat-completions backed generator."""

    def __init__(self, client=None, model="gpt-4o-mini", api_key=None, temperature=0.4):
        if client is None:
            from openai import OpenAI
            client = OpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.temperature = temperature

    def generate(self, prompt: str) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except Exception as e:
            raise GenerationError(f"Text generation request failed: {e}") from e
        try:
            text = resp.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise GenerationError(f"Unexpected text generation response: {e}") from e
        if not text or not text.strip():
            raise GenerationError("Text generation returned an empty response")
        return text.strip()


def build_generator(config: dict):
    """Construct the configured generator, or None when text generation is off.

    ``config`` is the ``text_generation`` section of the agent config.
    """
    provider = (config or {}).get("provider")
    if not provider:
        return None
    if provider != "openai":
        raise ValueError(f"Unknown text generation provider: {provider!r}")
    api_key = os.environ.get(config.get("api_key_env") or "OPENAI_API_KEY")
    if not api_key:
        print(f"  NOTE: {config.get('api_key_env')} not set; using template text")
        return None
    return OpenAIGenerator(model=config.get("model") or "gpt-4o-mini", api_key=api_key)
