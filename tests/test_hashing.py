from src.services.hashing import create_hash, normalize_text


def test_normalize_text_unifies_line_endings_and_trims():
    assert normalize_text("  line one\r\nline two\r\n\n") == "line one\nline two"
    assert normalize_text(None) == ""
    assert normalize_text(42) == ""


def test_create_hash_is_sha1_of_normalized_text():
    assert create_hash("abc") == "a9993e364706816aba3e25717850c26c9cd0d89d"
    assert create_hash("\n  abc \r\n") == "a9993e364706816aba3e25717850c26c9cd0d89d"
    assert create_hash(None) == "da39a3ee5e6b4b0d3255bfef95601890afd80709"
    assert len(create_hash("anything")) == 40


def test_create_hash_ignores_incidental_whitespace_only():
    unix = "Senior engineer\nPython, SQL\n"
    windows = "  Senior engineer\r\nPython, SQL\r\n"

    assert create_hash(unix) == create_hash(windows)
    assert create_hash("Python,  SQL") != create_hash("Python, SQL")
