"""Default code synthesis backend (Strands agents)."""

from uiforge.synthesis.strands_synthesizer import StrandsCodeSynthesizer, extract_code

__all__ = ["StrandsCodeSynthesizer", "extract_code"]
