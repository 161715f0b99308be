"""
Offline reimplementation of git's object hashing.
Lets the store compute blob, tree, commit and tag ids without talking to the remote.
"""

from .git_object import Person, TreeEntry, MODES
from .git_hash import git_hash, blob_hash, tree_hash, commit_hash, tag_hash

__all__ = ['Person', 'TreeEntry', 'MODES', 'git_hash', 'blob_hash', 'tree_hash', 'commit_hash', 'tag_hash']
