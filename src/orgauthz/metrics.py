from prometheus_client import Counter

permission_checks_total = Counter(
    "orgauthz_permission_checks_total",
    "Number of permission checks answered by the resolver",
    ["result", "source"],
)

super_admin_overrides_total = Counter(
    "orgauthz_super_admin_overrides_total",
    "Number of checks granted through the super-admin override",
)

role_bindings_total = Counter(
    "orgauthz_role_bindings_total",
    "Number of role binding operations",
    ["scope", "operation"],
)

invitations_processed_total = Counter(
    "orgauthz_invitations_processed_total",
    "Number of invitation state transitions",
    ["outcome"],
)
