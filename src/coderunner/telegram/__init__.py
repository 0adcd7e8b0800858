from .client import BotClient
from .errors import (
    InputFileError,
    InvalidFilenameError,
    PayloadError,
    TelegramApiError,
    TelegramError,
    TelegramNetworkError,
    TelegramUploadError,
)
from .files import InputFile
from .multipart import create_boundary, default_filename, encode_multipart
from .payload import ExtractedFile, extract_files, needs_multipart, to_json_body
from .request import RequestBody, build_request
from .streaming import BodyStream, StreamState

__all__ = [
    "BodyStream",
    "BotClient",
    "ExtractedFile",
    "InputFile",
    "InputFileError",
    "InvalidFilenameError",
    "PayloadError",
    "RequestBody",
    "StreamState",
    "TelegramApiError",
    "TelegramError",
    "TelegramNetworkError",
    "TelegramUploadError",
    "build_request",
    "create_boundary",
    "default_filename",
    "encode_multipart",
    "extract_files",
    "needs_multipart",
    "to_json_body",
]
