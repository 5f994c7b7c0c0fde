"""Feature modules for community-access.

- roles: scoped role grants and permission resolution
- groups: read-only group/community directories and the member counter
- memberships: the group membership state machine
- authorization: composite gate questions and the service facade
"""
