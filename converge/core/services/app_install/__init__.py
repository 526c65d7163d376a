"""
App install services — everything between a parsed directive and a
running installer.

    detection/   — host, architecture and presence probes (read-only)
    resolver/    — turn indirect locators into concrete artifacts
    execution/   — subprocess, HTTP and sudo primitives
"""
