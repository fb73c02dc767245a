from labintake.extraction.base import BaseExtractor
from labintake.extraction.chain import ChainResult, FallbackChain
from labintake.extraction.extractor import Extractor
from labintake.extraction.factory import ExtractorFactory

__all__ = ["BaseExtractor", "ChainResult", "Extractor", "ExtractorFactory", "FallbackChain"]
