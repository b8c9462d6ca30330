"""
Services: the URL store and its backends, short code generation and
geolocation. Endpoints depend on these, never on the database directly.
"""
