"""
Multipart upload reception for transaction imports.

The request body is streamed through ``python_multipart``'s push parser as it
arrives. Only the first ``file`` part is written to disk, straight into a temp
file under the imports directory, and the size limit is enforced chunk by
chunk. Any other file part is drained without being stored.
"""
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from app.core.exceptions import BadRequestError, PayloadTooLargeError

logger = logging.getLogger("ledgerflow.imports.upload")


@dataclass
class ReceivedUpload:
    """An upload written to a temp file, not yet bound to a job."""
    path: Path
    file_name: str
    project_id: str
    size: int

    def discard(self) -> None:
        """Delete the temp file if it still exists."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp upload {self.path}: {e}")


def _decode(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return value.decode("latin-1")


class _FormStream:
    """
    Callback state for one multipart body.

    Parts are classified when their headers are complete: the first file part
    named ``file_field`` is kept, other file parts are drained, and plain
    fields are buffered up to ``max_field_size``.
    """

    def __init__(self, receiver: "UploadReceiver"):
        self.receiver = receiver
        self.headers: Dict[bytes, bytes] = {}
        self.header_field = b""
        self.header_value = b""

        self.part_name = ""
        self.part_kind = ""  # "keep", "drain" or "field"
        self.field_value = bytearray()
        self.field_count = 0
        self.ended = False

        self.project_id: Optional[str] = None
        self.file_name: Optional[str] = None
        self.temp_path: Optional[Path] = None
        self.temp_file: Optional[BinaryIO] = None
        self.size = 0

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_end": self.on_end,
        }

    def on_part_begin(self) -> None:
        self.headers = {}
        self.field_value = bytearray()

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self.header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self.header_value += data[start:end]

    def on_header_end(self) -> None:
        self.headers[self.header_field.lower()] = self.header_value
        self.header_field = b""
        self.header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self.headers.get(b"content-disposition", b""))
        if b"name" not in options:
            raise BadRequestError('The Content-Disposition header field "name" must be provided')
        self.part_name = _decode(options[b"name"])

        if b"filename" not in options:
            self.field_count += 1
            if self.field_count > self.receiver.max_fields:
                raise BadRequestError(
                    f"Too many fields. Maximum number of fields is {self.receiver.max_fields}"
                )
            self.part_kind = "field"
        elif self.part_name == self.receiver.file_field and self.temp_file is None and self.temp_path is None:
            self.file_name = _decode(options[b"filename"]) or "upload.csv"
            self.temp_path, self.temp_file = self.receiver.open_temp_file(self.file_name)
            self.part_kind = "keep"
        else:
            logger.debug(f"Discarding extra file part {self.part_name!r}")
            self.part_kind = "drain"

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if self.part_kind == "keep":
            self.size += end - start
            if self.size > self.receiver.max_file_size:
                raise PayloadTooLargeError(
                    message=f"File size exceeds {self.receiver.max_file_size} bytes",
                    details={"max_file_size": self.receiver.max_file_size},
                )
            self.temp_file.write(data[start:end])
        elif self.part_kind == "field":
            self.field_value += data[start:end]
            if len(self.field_value) > self.receiver.max_field_size:
                raise BadRequestError(
                    f"Form field {self.part_name!r} exceeds {self.receiver.max_field_size} bytes"
                )

    def on_part_end(self) -> None:
        if self.part_kind == "keep":
            self.temp_file.close()
            self.temp_file = None
        elif self.part_kind == "field" and self.part_name == self.receiver.project_field:
            if self.project_id is None:
                self.project_id = _decode(bytes(self.field_value)).strip() or None
        self.part_kind = ""

    def on_end(self) -> None:
        self.ended = True

    def cleanup(self) -> None:
        """Close and delete the temp file, if one was started."""
        if self.temp_file is not None:
            self.temp_file.close()
            self.temp_file = None
        if self.temp_path is not None:
            try:
                self.temp_path.unlink()
            except FileNotFoundError:
                pass
            self.temp_path = None


class UploadReceiver:
    """
    Extracts the file part and the project id from a multipart request.

    At most one file is written per request. Extra file parts, under any
    name, are read and dropped rather than rejected.
    """

    def __init__(
        self,
        imports_dir: Union[str, Path],
        max_file_size: int,
        file_field: str = "file",
        project_field: str = "projectId",
        max_fields: int = 100,
        max_field_size: int = 1024 * 1024,
    ):
        self.imports_dir = Path(imports_dir)
        self.max_file_size = max_file_size
        self.file_field = file_field
        self.project_field = project_field
        self.max_fields = max_fields
        self.max_field_size = max_field_size

    def open_temp_file(self, file_name: str):
        """Create ``upload-<random><ext>`` under the imports directory."""
        self.imports_dir.mkdir(parents=True, exist_ok=True)
        suffix = Path(file_name).suffix or ".csv"
        temp_fd, temp_name = tempfile.mkstemp(prefix="upload-", suffix=suffix, dir=self.imports_dir)
        return Path(temp_name), os.fdopen(temp_fd, "wb")

    async def receive(self, request: Request) -> ReceivedUpload:
        """
        Stream the multipart body, writing the file part to a temp file.

        Raises:
            BadRequestError: Wrong content type, malformed body or a missing form field
            PayloadTooLargeError: File part larger than ``max_file_size``
        """
        content_type, params = parse_options_header(request.headers.get("content-type", ""))
        if content_type.strip().lower() != b"multipart/form-data":
            raise BadRequestError("Content-Type must be multipart/form-data")
        boundary = params.get(b"boundary")
        if not boundary:
            raise BadRequestError("Multipart boundary is missing")

        form = _FormStream(self)
        parser = MultipartParser(boundary, form.callbacks())
        try:
            async for chunk in request.stream():
                if chunk:
                    parser.write(chunk)
            parser.finalize()

            if not form.ended:
                raise BadRequestError("Malformed multipart body")
            if form.temp_path is None:
                raise BadRequestError(f'Missing form field "{self.file_field}" (CSV file)')
            if form.project_id is None:
                raise BadRequestError(f'Missing form field "{self.project_field}"')
        except MultipartParseError as e:
            form.cleanup()
            raise BadRequestError("Malformed multipart body", details={"reason": str(e)}) from e
        except BaseException:
            form.cleanup()
            raise

        logger.info(f"Received upload {form.file_name!r} ({form.size} bytes) for project {form.project_id}")
        return ReceivedUpload(
            path=form.temp_path,
            file_name=form.file_name,
            project_id=form.project_id,
            size=form.size,
        )
