"""
Plain records describing the pieces of git objects that get hashed.
"""
from dataclasses import dataclass

MODES = {
    "tree": "40000",
    "blob": "100644",
    "file": "100644",
    "exec": "100755",
    "sym": "120000",
    "commit": "160000",
}

@dataclass(frozen=True)
class TreeEntry:
    """
    One entry of a tree object.
    `type` is a key of MODES, `hash` is the hex id of the child object.
    """
    type: str
    hash: str

    @property
    def mode(self) -> str:
        return MODES[self.type]

@dataclass(frozen=True)
class Person:
    """
    Author, committer or tagger identity.
    `date` is either an ISO-8601 timestamp or an already formatted git date such as "1744389816 +0530".
    """
    name: str
    email: str
    date: str
