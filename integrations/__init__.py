"""
Outbound integrations.
"""
