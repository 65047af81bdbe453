"""Web interface for the people counter."""
