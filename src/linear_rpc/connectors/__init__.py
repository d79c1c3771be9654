"""Linear API access: GraphQL transport, remote lookups, retry policy."""
