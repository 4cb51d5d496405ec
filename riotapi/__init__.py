"""Riot Games API access for the announcer.

`riotapi.riotapi` holds the endpoint table, the async `RiotClient` used by the
watch workers and by startup reconciliation, and a small synchronous helper and
command line tool for inspecting summoners and matches by hand.
"""
