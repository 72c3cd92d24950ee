"""lnpm - npm install wrapper that pins versions and adds @types companions."""

__version__ = "0.0.1"
