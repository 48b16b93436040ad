"""Services: API access, push subscriptions and state synchronization."""
