"""
Billing plans (facturación).

Milestone arithmetic and plan rules live in ``milestones``; backend
access in ``service``.
"""
