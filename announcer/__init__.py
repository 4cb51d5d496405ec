"""Announcer package: watch registry, polling workers and persistence.

This module group tracks watched summoners, polls each one's recent match list,
and posts a one-line report to Discord after every newly completed match. It
also contains the state file handling used to restore watches across restarts,
the chat command handlers, CLI entry points, and logging support used by the
main runtime in `announcer.announcer`.
"""
