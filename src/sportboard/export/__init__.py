"""Activity export in the web dashboard's JSON format."""

from .web_json import (
    build_web_document,
    export_activity_as_web_json,
    export_filename,
    render_web_json,
    write_export,
)

__all__ = [
    "build_web_document",
    "export_activity_as_web_json",
    "export_filename",
    "render_web_json",
    "write_export",
]
