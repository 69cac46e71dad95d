"""ETHMumbai avatar studio: Gemini restyling proxy and avatar compositor."""

__version__ = "0.1.0"
