"""Discord bot package; run it with ``python -m beanbot.bot.main``."""
