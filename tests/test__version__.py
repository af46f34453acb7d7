"""Unit tests for `sirabm.__version__`."""

from sirabm import __version__


def test_version_is_string() -> None:
    """Test that `__version__` is a string."""
    assert isinstance(__version__, str)
