"""
Obras - Administrative dashboard for construction projects

Thin front-end over the company REST API.

Modules:
    core      - Shared services (config, logging, HTTP client, output)
    auth      - Bearer token acquisition for the REST API
    clients   - Client directory
    offices   - Office locations and branding
    projects  - Projects, lifecycle status and budget versions
    billing   - Billing plans and milestones ("hitos")
    finance   - Financial summary and Excel export
    calendar  - Project timeline view
    api       - Flask web screens
"""

__version__ = "0.1.0"
