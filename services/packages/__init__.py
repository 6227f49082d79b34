"""
Packages Package

Package manifest storage.
"""

from services.packages.store import PackageStore

__all__ = ['PackageStore']
