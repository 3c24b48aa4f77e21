"""File registration, assembly and input gathering services."""
