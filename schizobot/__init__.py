"""A Telegram group bot that records chat history and replies with Markov-generated text."""

__version__ = "0.1.0"