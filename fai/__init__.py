"""
fai - Foundation AI CLI

Chat, generate text, and write commit messages with a local language model.
"""

__version__ = "0.1.0"

# Centralized commit types - single source of truth
# Used by: git/commit.py (schema enum), output (colors)
COMMIT_TYPES = {
    'fix': 'bug fix',
    'hotfix': 'critical bug hotfix',
    'add': 'add new feature/file',
    'update': 'update function',
    'change': 'change function',
    'clean': 'clean code',
    'disable': 'disable feature',
    'remove': 'remove feature',
    'upgrade': 'upgrade library',
    'revert': 'revert changes',
}
