import os
import secrets
from enum import Enum
from pathlib import Path
from typing import NamedTuple

import markdown


class DocumentError(Exception):
    def __init__(self, filename: str):
        super().__init__(filename)
        self.filename = filename


class DocumentNotFound(DocumentError): pass

class DocumentExists(DocumentError): pass

class InvalidDocumentName(DocumentError): pass

class UnsupportedDocumentType(DocumentError): pass

class UndecodableDocument(DocumentError): pass


class DocumentKind(Enum):
    PLAIN_TEXT = "text/plain"
    MARKDOWN = "text/html"
    UNSUPPORTED = None


_KINDS = {
    ".txt": DocumentKind.PLAIN_TEXT,
    ".md": DocumentKind.MARKDOWN,
}


def classify(filename: str) -> DocumentKind:
    return _KINDS.get(Path(filename).suffix.lower(), DocumentKind.UNSUPPORTED)


class Rendered(NamedTuple):
    body: str
    content_type: str
    kind: DocumentKind


def render_markdown(text: str) -> str:
    extensions = ["fenced_code", "tables", "sane_lists", "codehilite"]
    return markdown.markdown(text, extensions=extensions)


def render(filename: str, content: str) -> Rendered:
    """Turn raw document text into a response body for its kind.

    Plain text is passed through untouched, markdown becomes an HTML
    fragment. Anything else raises UnsupportedDocumentType.
    """
    kind = classify(filename)
    if kind is DocumentKind.PLAIN_TEXT:
        return Rendered(content, kind.value, kind)
    if kind is DocumentKind.MARKDOWN:
        return Rendered(render_markdown(content), kind.value, kind)
    raise UnsupportedDocumentType(filename)


# longest file name (in bytes) common file systems accept
NAME_MAX = 255


class DocumentStore:
    """Flat directory of documents, one file per document.

    Every filename goes through `path_for` before any file-system call, so
    names with separators, parent segments or a leading dot never reach
    the disk.
    """

    def __init__(self, root):
        self.root = Path(root)

    def path_for(self, filename: str) -> Path:
        if (not filename or filename.startswith(".")
                or "/" in filename or "\\" in filename or "\0" in filename
                or len(filename.encode("utf-8", "surrogateescape")) > NAME_MAX):
            raise InvalidDocumentName(filename)
        root = self.root.resolve()
        candidate = (root / filename).resolve()
        if candidate.parent != root:
            raise InvalidDocumentName(filename)
        return candidate

    def list(self) -> list:
        try:
            entries = sorted(os.scandir(self.root), key=lambda e: e.name)
        except FileNotFoundError:
            return []
        return [e.name for e in entries
                if not e.name.startswith(".") and e.is_file(follow_symlinks=False)]

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    def read(self, filename: str, strict: bool = False) -> str:
        """Return the document text with its line endings untouched.

        Undecodable bytes become U+FFFD unless `strict` is set, in which
        case UndecodableDocument is raised instead.
        """
        fpath = self.path_for(filename)
        if not fpath.is_file():
            raise DocumentNotFound(filename)
        errors = "strict" if strict else "replace"
        try:
            with open(fpath, encoding="utf-8", errors=errors, newline="") as f:
                return f.read()
        except UnicodeDecodeError:
            raise UndecodableDocument(filename) from None

    def write(self, filename: str, content: str) -> None:
        fpath = self.path_for(filename)
        fpath.parent.mkdir(parents=True, exist_ok=True)
        # hidden temp name keeps half-written files out of list()
        tmp = fpath.with_name(f".{fpath.name}.{secrets.token_hex(4)}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp, fpath)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    def create(self, filename: str) -> None:
        if self.exists(filename):
            raise DocumentExists(filename)
        self.write(filename, "")

    def delete(self, filename: str) -> None:
        fpath = self.path_for(filename)
        if not fpath.is_file():
            raise DocumentNotFound(filename)
        fpath.unlink()
