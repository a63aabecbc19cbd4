"""Narration service for documents.

This service turns a document into read-along narration:
- Plain-text extraction from markdown/MDX
- Content-addressed caching of audio and word timestamps
- Text-to-speech synthesis on a cache miss
"""
