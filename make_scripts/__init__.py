"""Helper scripts around proxy_manifest (not installed with the package).

Keep the file side-effect free.
"""

__all__ = []
