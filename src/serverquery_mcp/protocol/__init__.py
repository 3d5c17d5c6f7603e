"""Protocol layer: line framing, escaping, command builders, and reply parsing."""

from .escaping import escape, unescape
from .commands import build_command, prepare, validate_command
from .parser import parse_event, parse_reply
