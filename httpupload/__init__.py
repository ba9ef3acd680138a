"""
Storage backend for Prosody's mod_http_upload_external.
"""
__version__ = "0.1.0"
