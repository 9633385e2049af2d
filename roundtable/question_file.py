"""Read a debate question from a markdown file with optional YAML frontmatter."""

from pathlib import Path

import frontmatter


def parse_question_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown question file.

    Returns:
        (question, metadata) where question is the body text and metadata
        may carry ``agents`` (list or comma-separated str) and ``rounds`` (int).
        If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    return post.content.strip(), dict(post.metadata)


def agents_from_meta(value: object) -> list[str] | None:
    """Normalize the ``agents`` frontmatter value to a list of names."""
    if value is None:
        return None
    if isinstance(value, str):
        names = [v.strip() for v in value.split(",")]
    elif isinstance(value, (list, tuple)):
        names = [str(v).strip() for v in value]
    else:
        return None
    return [n for n in names if n] or None


def rounds_from_meta(value: object) -> int | None:
    """Read the ``rounds`` frontmatter value.

    Raises:
        ValueError: If the value is not a positive integer.
    """
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"rounds must be a positive integer, got {value!r}")
    try:
        rounds = int(value)
    except ValueError:
        raise ValueError(f"rounds must be a positive integer, got {value!r}") from None
    if rounds < 1:
        raise ValueError(f"rounds must be a positive integer, got {value!r}")
    return rounds
