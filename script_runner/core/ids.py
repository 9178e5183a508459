"""
Identifier helpers for code blocks.
"""

import uuid

ID_FIELD_NAME = "script-id"
PLACEHOLDER_UUID = "00000000-0000-0000-0000-000000000000"


def new_script_id() -> str:
    """Generate a fresh block identifier."""
    return str(uuid.uuid4())


def id_comment(comment_prefix: str, script_id: str) -> str:
    """Render the identifier comment line for a block."""
    return f"{comment_prefix} {ID_FIELD_NAME}: {script_id}"


def id_comment_placeholder(comment_prefix: str) -> str:
    """Identifier comment with a placeholder UUID, shown for unidentified blocks."""
    return id_comment(comment_prefix, PLACEHOLDER_UUID)


def file_safe_id(script_id: str) -> str:
    return script_id.replace("-", "_")
