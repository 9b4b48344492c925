# portwatch - Run commands when TCP listening ports appear or disappear
try:
    from importlib.metadata import metadata as _metadata
    _meta = _metadata("portwatch")
    __version__ = _meta["Version"]
    __author__ = _meta.get("Author") or _meta.get("Author-email") or "portwatch developers"
    __url__ = _meta.get("Home-page") or ""
except Exception:
    __version__ = "0.1.0"
    __author__ = "portwatch developers"
    __url__ = ""
__license__ = "MIT"
