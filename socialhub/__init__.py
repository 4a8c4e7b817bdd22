"""SocialHub: feed, profiles, follow graph and direct messaging."""
