"""bumpbot: automated dependency-upgrade pull requests for npm/yarn projects."""

__version__ = "0.3.0"
