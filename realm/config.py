"""
Single place for default game/setup configuration.
Change DEFAULT_SETUP_ID to switch which setup is used when creating a new game (when no setup_id is provided).
"""
# Setup id from realm/data/setups/<id>/setup.json. This is the default for new games.
DEFAULT_SETUP_ID = "default"
