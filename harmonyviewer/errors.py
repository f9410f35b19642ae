"""Exception types raised by the harmony viewer."""


class HarmonyViewerError(Exception):
    """Base class for all viewer errors."""


class ConfigError(HarmonyViewerError, ValueError):
    """The viewer configuration is missing a required value or holds an invalid one."""


class ScoreLoadError(HarmonyViewerError):
    """
    The score could not be loaded.

    Covers a missing score location, an unavailable rendering toolkit and
    fetch/parse failures. These errors are terminal for the viewer instance
    that raised them.
    """
