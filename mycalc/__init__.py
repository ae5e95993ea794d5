"""mycalc — decimal calculator with a declarative operation registry.

Operations are declared per category under mycalc/operations/, built once
into immutable descriptors, and run through a single validate-then-dispatch
engine. Price operations query a quote endpoint with classified retries.

Usage:
    python -m mycalc                      # Interactive menu
    python -m mycalc list                 # Show operations
    python -m mycalc run Add 0.1 0.2      # Run one operation
"""
