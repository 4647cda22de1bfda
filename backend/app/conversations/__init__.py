"""Conversation records (one public room, 1:1 private chats)."""
