from agents.fallback_template import generate_fallback
from agents.image_agent import ImageFetchChain
from agents.response_parser import parse_generation
from agents.writer import ContentGenerationChain

__all__ = [
    "ContentGenerationChain",
    "ImageFetchChain",
    "generate_fallback",
    "parse_generation",
]
