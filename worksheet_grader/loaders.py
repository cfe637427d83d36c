"""
File loading for worksheets and answer sets.

Reads JSON documents from disk with encoding fallback and clear errors
for missing, unsupported or empty files.
"""

from pathlib import Path
from typing import ClassVar


class LoadError(Exception):
    """
    Raised when a document cannot be loaded.

    Contains detailed information about the failure cause.
    """

    def __init__(self, message: str, file_path: str | Path, cause: Exception | None = None):
        self.file_path = str(file_path)
        self.cause = cause
        super().__init__(f"Failed to load '{file_path}': {message}")


class DocumentLoader:
    """Loads the text content of worksheet and answer documents."""

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".json",)

    # Encodings to try in order of preference
    ENCODINGS: ClassVar[tuple[str, ...]] = ("utf-8", "utf-8-sig", "latin-1")

    @classmethod
    def supports(cls, file_path: Path) -> bool:
        return file_path.suffix.lower() in cls.SUPPORTED_EXTENSIONS

    def load(self, file_path: Path) -> str:
        """
        Read a document's text content.

        Args:
            file_path: Path to the document file.

        Returns:
            The file content.

        Raises:
            LoadError: If the file is missing, unsupported, empty or undecodable.
        """
        self._validate_file(file_path)

        content = self._read_with_encoding_fallback(file_path)

        if not content.strip():
            raise LoadError("File is empty or contains only whitespace", file_path)

        return content

    def _validate_file(self, file_path: Path) -> None:
        if not file_path.exists():
            raise LoadError("File does not exist", file_path)

        if not file_path.is_file():
            raise LoadError("Path is not a file", file_path)

        if not self.supports(file_path):
            raise LoadError(
                f"Unsupported file format. Expected one of: {self.SUPPORTED_EXTENSIONS}",
                file_path,
            )

    def _read_with_encoding_fallback(self, file_path: Path) -> str:
        """Try each supported encoding until one decodes the file."""
        last_error: Exception | None = None

        for encoding in self.ENCODINGS:
            try:
                # json.loads rejects a leading BOM
                text = file_path.read_text(encoding=encoding)
                return text.lstrip("\ufeff")
            except UnicodeDecodeError as e:
                last_error = e
                continue
            except OSError as e:
                raise LoadError(f"Could not read file: {e}", file_path, cause=e) from e

        raise LoadError(
            f"Could not decode file with any supported encoding: {self.ENCODINGS}",
            file_path,
            cause=last_error,
        )


def load_document(file_path: Path | str) -> str:
    """Load a document's text content in one step."""
    path = Path(file_path) if isinstance(file_path, str) else file_path
    return DocumentLoader().load(path)
