"""Unit tests for documents: DocumentStore, classify and render."""

import pytest

from documents import (
    DocumentExists,
    DocumentKind,
    DocumentNotFound,
    DocumentStore,
    InvalidDocumentName,
    UndecodableDocument,
    UnsupportedDocumentType,
    classify,
    render,
)


class TestDocumentStore:

    @pytest.fixture
    def store(self, tmp_path):
        return DocumentStore(tmp_path / "data")

    def test_missing_root_lists_empty(self, store):
        assert store.list() == []

    def test_list_is_sorted_and_skips_hidden_and_dirs(self, store):
        store.write("b.txt", "")
        store.write("a.md", "")
        (store.root / ".a.md.tmp").write_text("partial")
        (store.root / "folder").mkdir()
        assert store.list() == ["a.md", "b.txt"]

    def test_write_then_read(self, store):
        store.write("notes.txt", "line one\r\nline two")
        assert store.read("notes.txt") == "line one\r\nline two"

    def test_write_overwrites_and_leaves_no_temp_files(self, store):
        store.write("notes.txt", "first")
        store.write("notes.txt", "second")
        assert store.read("notes.txt") == "second"
        assert [p.name for p in store.root.iterdir()] == ["notes.txt"]

    def test_read_replaces_undecodable_bytes(self, store):
        store.root.mkdir()
        (store.root / "latin.txt").write_bytes(b"caf\xe9")
        assert store.read("latin.txt") == "caf\ufffd"
        with pytest.raises(UndecodableDocument):
            store.read("latin.txt", strict=True)

    def test_read_missing(self, store):
        with pytest.raises(DocumentNotFound) as exc:
            store.read("missing.txt")
        assert exc.value.filename == "missing.txt"

    def test_read_directory_is_not_found(self, store):
        (store.root / "folder.txt").mkdir(parents=True)
        with pytest.raises(DocumentNotFound):
            store.read("folder.txt")

    def test_create_empty(self, store):
        store.create("new.md")
        assert store.read("new.md") == ""

    def test_create_existing(self, store):
        store.write("new.md", "keep me")
        with pytest.raises(DocumentExists):
            store.create("new.md")
        assert store.read("new.md") == "keep me"

    def test_delete(self, store):
        store.write("gone.txt", "bye")
        store.delete("gone.txt")
        assert not store.exists("gone.txt")

    def test_delete_missing(self, store):
        with pytest.raises(DocumentNotFound):
            store.delete("gone.txt")

    @pytest.mark.parametrize("name", [
        "", ".", "..", "../etc/passwd", "a/b.txt", "a\\b.txt", ".hidden.txt", "nul\0.txt", "a" * 256,
    ])
    def test_rejects_unsafe_names(self, store, name):
        with pytest.raises(InvalidDocumentName):
            store.read(name)
        with pytest.raises(InvalidDocumentName):
            store.write(name, "x")
        with pytest.raises(InvalidDocumentName):
            store.delete(name)


class TestClassify:

    @pytest.mark.parametrize("name,kind", [
        ("a.txt", DocumentKind.PLAIN_TEXT),
        ("a.md", DocumentKind.MARKDOWN),
        ("README.MD", DocumentKind.MARKDOWN),
        ("a.png", DocumentKind.UNSUPPORTED),
        ("Makefile", DocumentKind.UNSUPPORTED),
    ])
    def test_kind_from_extension(self, name, kind):
        assert classify(name) is kind


class TestRender:

    def test_plain_text_is_verbatim(self):
        rendered = render("a.txt", "# not a heading <b>")
        assert rendered.body == "# not a heading <b>"
        assert rendered.content_type == "text/plain"

    def test_markdown_becomes_html(self):
        rendered = render("about.md", "# Ruby is...")
        assert rendered.content_type == "text/html"
        assert "<h1>Ruby is...</h1>" in rendered.body

    def test_markdown_tables(self):
        rendered = render("t.md", "| a | b |\n|---|---|\n| 1 | 2 |\n")
        assert "<table>" in rendered.body

    def test_unsupported(self):
        with pytest.raises(UnsupportedDocumentType):
            render("photo.png", "")
