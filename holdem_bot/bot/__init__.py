"""Chat-facing side of the bot.

Key components:
- CommandRouter: parses chat commands and validates moves (router.py)
- HoldemClient: Discord transport and Messenger implementation (client.py)
- display: text rendering for every message the bot posts
"""
