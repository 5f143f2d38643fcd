"""Route modules mounted by ``app.api.router``."""
