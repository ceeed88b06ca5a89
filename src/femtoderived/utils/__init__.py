"""Utilities shared across the package.

- `enums`: closed enumerations of the data model (particle type, origin...)
- `globals`: display-name lookups and fixed representation constants
- `bitmask`: typed wrapper around the 32-bit selection containers
- `logger`: package-wide logger
"""
