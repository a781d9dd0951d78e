"""Exceptions raised by lrmatte when inputs or settings cannot be processed."""


class MattingInputError(ValueError):
    """Image or masks violate the pipeline's input contract."""


class MaskOverlapError(MattingInputError):
    """A pixel is marked as both foreground and background."""

    def __init__(self, count: int):
        super().__init__(f"{count} pixel(s) are marked as both foreground and background")
        self.count = count


class ConfigError(ValueError):
    """A configuration value is out of range or unknown."""
