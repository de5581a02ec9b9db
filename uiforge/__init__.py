"""uiforge: design-to-code workflow orchestration and validation-repair engine."""

__version__ = "0.1.0"
