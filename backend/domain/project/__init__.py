"""
Project Domain - projects, milestones, tasks and their memberships.

This domain handles the work-tracking hierarchy:
- Status lifecycles and their side effects
- Membership-based access control
- Field validation
- Progress derived from tasks (projects) and deliverables (milestones)
"""
