APP_NAME = "arcnav"
APP_AUTHOR = "arcnav"
SETTINGS_FILENAME = "settings.json"
