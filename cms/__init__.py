"""
cms/ -- Admin and public services for the tourism CMS.

Submodules:
    config         Settings resolved from environment variables.
    logging_setup  Process-wide logging configuration.
    auth           Login with bcrypt password hashes and account lockout.
    categories     Category management with computed place counts.
    places         Place management, status history, search and statistics.
    public         Read-only view of published content for the public site.
    results        Tagged result dicts shared by the services.
    cli            Maintenance commands (health, check, recover, init, backups).
"""
