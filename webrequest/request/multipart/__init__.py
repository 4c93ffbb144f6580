from .parser import MultipartParser

__all__ = ["MultipartParser"]
