"""Domain services used by the page and API blueprints."""
