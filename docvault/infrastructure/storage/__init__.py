from .local import LocalFileStorage, extract_text

__all__ = ["LocalFileStorage", "extract_text"]
