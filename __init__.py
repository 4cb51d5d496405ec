"""League Announcer project package.

This repository groups modules for League of Legends match-data retrieval,
new-match detection and report formatting, and watch-driven Discord
announcements. Subpackages are organized by responsibility (`riotapi`,
`matches`, and `announcer`) to keep runtime behavior and integrations modular.
"""
