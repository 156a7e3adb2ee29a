"""campaign-studio: turn one visual asset and a chat into email and landing-page content."""

__version__ = "0.1.0"
