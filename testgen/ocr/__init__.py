"""OCR package"""
from .engine import OcrEngine, EasyOcrEngine

__all__ = ["OcrEngine", "EasyOcrEngine"]
