from .header_builder import allowed_methods, assemble_cors_headers, build_cors_headers
from .origin_policy import is_origin_allowed, resolve_allow_origin
from .path_matcher import compile_pattern, is_path_allowed, matches

__all__ = [
    "allowed_methods",
    "assemble_cors_headers",
    "build_cors_headers",
    "compile_pattern",
    "is_origin_allowed",
    "is_path_allowed",
    "matches",
    "resolve_allow_origin",
]
