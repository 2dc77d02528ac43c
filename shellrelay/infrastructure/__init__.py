"""
Infrastructure layer: configuration, logging and the asyncssh transport.
"""
