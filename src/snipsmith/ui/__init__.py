"""User-facing front-ends for snipsmith."""
