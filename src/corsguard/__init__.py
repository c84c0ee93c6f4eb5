"""corsguard - HTTP server bootstrap with CORS and CSRF middleware."""

__version__ = "0.1.0"
