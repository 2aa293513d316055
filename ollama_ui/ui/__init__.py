"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Conversation sidebar with folders and search
    - Prompt templates with slash commands
    - Streaming chat log with stop, regenerate and edit-and-resend
    - Document and image uploads
    - Dark/light theme support

Contains no business logic. State changes go through ChatStore and sends
through ChatService.
"""
