"""
gl-fix-labels: Propagate the GitLab admin default labels into existing projects.

A one-shot batch tool. It creates a throwaway private project (which GitLab
fills with the instance's default labels), copies or replaces those labels on
one project or on every project the token can see, and removes the throwaway
project again - also when the run fails partway.

Usage:
    gl-fix-labels API_BASE_URI AUTH_TOKEN {add,delete,replace} {all,PROJECT_ID}
"""

from gl_fix_labels.cli import main

__version__ = "0.1.0"
__all__ = ["main", "__version__"]
