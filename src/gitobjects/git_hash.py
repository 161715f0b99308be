"""
Hash functions for git objects.
Every function here must produce exactly the id the remote computes for the same object,
since the store relies on that to skip uploads of content that already exists.
"""
from datetime import datetime, timezone
import hashlib
import re

from .git_object import Person, TreeEntry

def git_hash(data: bytes, kind: str = "blob", algorithm: str = "sha1") -> str:
    """
    Hash raw object content the way git does.

    Args:
        data: The object content
        kind: Object type written into the header (blob, tree, commit, tag)
        algorithm: hashlib algorithm name; git objects use sha1

    Returns:
        Hex digest of "{kind} {len}\\0" followed by the content
    """
    hasher = hashlib.new(algorithm)
    hasher.update(f"{kind} {len(data)}\0".encode())
    hasher.update(data)
    return hasher.hexdigest()

def blob_hash(data: bytes) -> str:
    return git_hash(data, "blob")

def _sort_key(item: tuple[str, TreeEntry]) -> str:
    # Directories compare as if their name ended with a slash
    name, entry = item
    return name + "/" if entry.type == "tree" else name

def tree_hash(entries: dict[str, TreeEntry]) -> str:
    """
    Hash a tree object.

    Args:
        entries: Mapping of entry name to TreeEntry. Directory names carry no trailing slash.

    Returns:
        Hex id of the tree
    """
    content = bytearray()
    for name, entry in sorted(entries.items(), key=_sort_key):
        content += f"{entry.mode} {name}\0".encode()
        content += bytes.fromhex(entry.hash)
    return git_hash(bytes(content), "tree")

GIT_DATE = re.compile(r"\d+ [+-]\d{4}")

def format_date(date: str) -> str:
    # ISO timestamps become "<epoch seconds> +0000"; git dates pass through untouched
    if GIT_DATE.fullmatch(date):
        return date
    try:
        parsed = datetime.fromisoformat(date)
    except ValueError:
        return date
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return f"{int(parsed.timestamp())} +0000"

def format_person(person: Person) -> str:
    return f"{person.name} <{person.email}> {format_date(person.date)}"

def commit_hash(
    tree: str,
    author: Person,
    committer: Person,
    message: str = "",
    parents: list[str] | None = None,
) -> str:
    lines = [f"tree {tree}"]
    for parent in parents or []:
        lines.append(f"parent {parent}")
    lines.append(f"author {format_person(author)}")
    lines.append(f"committer {format_person(committer)}")
    content = "\n".join(lines) + "\n\n"
    if message:
        content += message + "\n"
    return git_hash(content.encode("utf-8"), "commit")

def tag_hash(object_hash: str, object_type: str, tag: str, tagger: Person, message: str) -> str:
    """Hash an annotated tag object."""
    content = (
        f"object {object_hash}\n"
        f"type {object_type}\n"
        f"tag {tag}\n"
        f"tagger {format_person(tagger)}\n"
        f"\n{message}\n"
    )
    return git_hash(content.encode("utf-8"), "tag")
