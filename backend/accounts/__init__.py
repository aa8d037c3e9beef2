# accounts/__init__.py
"""
Accounts app: tenancy and access control.

- Company: the tenant
- User: email-based custom user with an active company
- CompanyMembership: user <-> company with role and explicit permissions
- ActorContext: who is acting, in which company, with which permissions
"""
