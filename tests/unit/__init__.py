"""Unit tests for individual components.

Coverage:
    - config: Environment overrides and validation
    - client: Streaming, single JSON replies, deadlines and error translation
    - chat: Stream consumer, state store, prompts and the send pipeline
    - attachments: Size limits, classification and PDF extraction
"""
