"""TranslateHub: speech, text, image and video translation backed by Gemini and ElevenLabs."""

__version__ = "0.1.0"
