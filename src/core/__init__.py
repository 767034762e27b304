"""Core domain package for branchbot.

Core contains matching, middleware and dispatch logic without any chat
platform or storage-specific code, keeping the engine portable.
"""
