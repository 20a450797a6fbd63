"""In-memory multipart form builder.

:class:`FormData` collects fields in insertion order; the httpx transports
turn it into a ``files=`` argument with :meth:`FormData.to_httpx_files`
and let httpx compute the multipart boundary and ``Content-Length``.

The class :meth:`~tagrequest.request.Request.form` instantiates is
overridable per client (``Client(form_data_class=...)``) or process-wide via
:func:`set_form_data_class`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional


@dataclass(frozen=True)
class FormField:
    """One multipart field.

    A field is sent as a file part when it has a ``filename``, or when its
    value is binary (``bytes``) or file-like (has ``read``).
    """

    name: str
    value: Any
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return (
            self.filename is not None
            or isinstance(self.value, (bytes, bytearray))
            or hasattr(self.value, "read")
        )


class FormData:
    """Ordered collection of multipart fields.

    Example::

        form = FormData()
        form.append("title", "Report")
        form.append("file", open("report.pdf", "rb"), filename="report.pdf",
                    content_type="application/pdf")
    """

    def __init__(self) -> None:
        self._fields: list[FormField] = []

    def append(
        self,
        name: str,
        value: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> None:
        self._fields.append(FormField(name, value, filename, content_type))

    def __iter__(self) -> Iterator[FormField]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def to_httpx_files(self) -> list[tuple[str, tuple[Any, ...]]]:
        """Render the fields as an httpx ``files=`` list.

        Plain fields get a ``None`` filename so httpx emits them as simple
        form-data parts; the body is multipart even without any file.
        """
        files: list[tuple[str, tuple[Any, ...]]] = []
        for field in self._fields:
            if not field.is_file:
                files.append((field.name, (None, _form_value(field.value))))
            elif field.content_type:
                filename = field.filename or field.name
                files.append((field.name, (filename, field.value, field.content_type)))
            else:
                files.append((field.name, (field.filename or field.name, field.value)))
        return files


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ------------------------------------------------------------------ #
# Process-wide form class
# ------------------------------------------------------------------ #

_form_data_class: type[FormData] = FormData


def get_form_data_class() -> type[FormData]:
    """Return the class :meth:`Request.form` builds forms with by default."""
    return _form_data_class


def set_form_data_class(cls: Optional[type[FormData]]) -> None:
    """Install *cls* as the default form class; ``None`` restores :class:`FormData`."""
    global _form_data_class
    _form_data_class = cls or FormData
