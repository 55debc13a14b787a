# Copyright (c) 2025 Luc Vincent. All Rights Reserved.
# PhotoFrame - Immich Photo Frame Server
"""
PhotoFrame serves a never-repeating slideshow of photos from an Immich
library to tablets and browsers acting as digital photo frames.
"""

__version__ = "1.0.0"
