"""
Mail.ru identity federation service.

Lets an identity broker log users in with Mail.ru: the broker runs the OAuth
authorization code flow, this package resolves the resulting access token (or
an externally issued subject token) to a normalized identity and enforces the
allowed email domain policy.

Packages:
- federation: Provider configuration, profile fetching, normalization
- config: Environment settings
- main: FastAPI application factory
"""

__version__ = "1.0.0"
