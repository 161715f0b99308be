import hashlib

from gitobjects import Person, TreeEntry, blob_hash, commit_hash, git_hash, tag_hash, tree_hash
from gitobjects.git_hash import format_date

SOMAJIT = Person("Somajit Dey", "73181168+SomajitDey@users.noreply.github.com", "1744389816 +0530")

def test_blob_hash_matches_git():
    assert blob_hash(b"what is up, doc?") == "bd9dbf5aae1a3862dd1526723246b20206e5fc37"

def test_git_hash_header():
    expected = hashlib.sha1(b"commit 3\0abc").hexdigest()
    assert git_hash(b"abc", "commit") == expected

def test_tree_hash_matches_git():
    entries = {
        ".gitignore": TreeEntry("blob", "c2658d7d1b31848c3b71960543cb0368e56cd4c7"),
        "LICENSE": TreeEntry("blob", "ff6bd914de60ddd61b72600de4c50cafd14a16a5"),
        "README.md": TreeEntry("blob", "7bedddc70e910ac884ce12f51e461b0ba9a0e1e4"),
        "implementation.md": TreeEntry("blob", "7b4e7b68909921715a7e1851fe9b7f533cb045db"),
        "package-lock.json": TreeEntry("blob", "d82357be0a391739abec53d01e74315b4be6e171"),
        "package.json": TreeEntry("blob", "e55a9b7f8a8c6fe2810446d46594e4bfb43276b5"),
        "src": TreeEntry("tree", "3107a19614d70e58c4a4b7fa8d183bc9725d5fe4"),
    }
    assert tree_hash(entries) == "6b455df2c7121a4f23578ca35cdbdf5089e35b8f"

def test_tree_sorts_directories_with_trailing_slash():
    blob = blob_hash(b"x")
    sub = "3107a19614d70e58c4a4b7fa8d183bc9725d5fe4"
    # "a.txt" < "a/" even though "a" < "a.txt"
    content = (
        b"100644 a.txt\0" + bytes.fromhex(blob)
        + b"40000 a\0" + bytes.fromhex(sub)
    )
    expected = hashlib.sha1(f"tree {len(content)}\0".encode() + content).hexdigest()
    assert tree_hash({"a": TreeEntry("tree", sub), "a.txt": TreeEntry("blob", blob)}) == expected

def test_commit_hash_matches_git():
    commit = commit_hash(
        "cf0c2fd8ac653287b3bc1a8f988a580a8f512703",
        author=SOMAJIT,
        committer=SOMAJIT,
        message="hi there",
        parents=["4550780e201f452725b2a06f42a74ade28a89db4"],
    )
    assert commit == "e9ace96e2ca6a2186a0c8a65b1b925f79a6d2ad2"

def test_commit_without_message_has_no_trailing_line():
    tree = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
    person = Person("a a", "a@a.a", "2025-01-01T00:00:00Z")
    text = f"tree {tree}\nauthor a a <a@a.a> 1735689600 +0000\ncommitter a a <a@a.a> 1735689600 +0000\n\n"
    assert commit_hash(tree, person, person) == git_hash(text.encode(), "commit")

def test_tag_hash_matches_git():
    tagger = Person(SOMAJIT.name, SOMAJIT.email, "1744395850 +0530")
    tag = tag_hash("d9ecde7f619917f2c0fb88e74ddf35bac4e6ec40", "commit", "annotated", tagger, "Hello\nthere")
    assert tag == "5a0e776cd195b704188508dbd54146f06a2994ec"

def test_format_date():
    assert format_date("2025-01-01T00:00:00Z") == "1735689600 +0000"
    assert format_date("2025-01-01T05:30:00+05:30") == "1735689600 +0000"
    assert format_date("1744389816 +0530") == "1744389816 +0530"

def test_hashes_are_deterministic():
    person = Person("a a", "a@a.a", "2025-01-01T00:00:00Z")
    first = commit_hash(blob_hash(b"same"), person, person, "text/plain")
    second = commit_hash(blob_hash(b"same"), person, person, "text/plain")
    assert first == second
    assert first != commit_hash(blob_hash(b"same"), person, person, "")
