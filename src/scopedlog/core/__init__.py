"""Core domain: records, templates, scopes, errors, timing and the Logger."""
