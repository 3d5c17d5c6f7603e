"""Connection adapters: the ServerQuery and file transfer protocol engines."""

from .serverquery import DEFAULT_QUERY_PORT, ServerQuery
from .filetransfer import CHUNK_SIZE, DEFAULT_FILETRANSFER_PORT, FileTransfer
