# utils/common.py
"""Common utilities: path management and identifier validation"""
import re
import os

# DO NOT import settings here - config.py imports this module


# ============= Path Management =============

def get_project_root() -> str:
    """Returns the absolute path to the project's root directory."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))


def get_log_file_path() -> str:
    """Creates the log directory if it doesn't exist and returns the full log file path."""
    project_root = get_project_root()
    log_dir = os.path.join(project_root, 'log')

    if not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    return os.path.join(log_dir, 'docqa.log')


# ============= Identifiers =============

def validate_document_id(doc_id: str) -> bool:
    """Validate document ID format."""
    uuid_pattern = r'^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$'
    return bool(re.match(uuid_pattern, doc_id, re.IGNORECASE))


def truncate_snippet(content: str, length: int) -> str:
    """Cut content to a display snippet, marking the cut with an ellipsis."""
    return content[:length] + "..." if len(content) > length else content
