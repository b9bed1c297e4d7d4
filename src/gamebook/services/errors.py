"""Service-layer exceptions."""


class SaveLoadError(Exception):
    """Raised when a stored save slot payload cannot be decoded."""


class CharacterSetupError(Exception):
    """Raised when character creation input breaks the story's rules."""
