"""
Switch-port inventory aggregation.

This package provides:
- LibreNMS and NetDisco source adapters behind one fetch_inventory() contract
- Glob-style device include/exclude filtering and section auto-assignment
- A TTL inventory cache shielding upstream from repeated polling
- Configuration, logging and a JSON entrypoint
"""
