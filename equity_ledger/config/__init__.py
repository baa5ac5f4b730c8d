"""Configuration: settings, database and business constants."""
