"""Textual frontend for chatting with the bot from a terminal."""
