"""
Profile management feature module.

Implements profile-based access control: per-object capabilities, field
level visibility and named action grants, scoped to an organization.
"""
