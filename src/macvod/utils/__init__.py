"""Constants shared across ``core``, ``infra`` and ``cli``.

Nothing here performs I/O or imports another macvod layer.
"""
