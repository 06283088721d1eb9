"""Decoding, luminance analysis and merging of exposure brackets."""
