"""
auth — Credential lifecycle.

Provides:
  • Password hashing (bcrypt, salted per call)
  • Signed JWT creation & verification with key rotation
  • Account / session store interfaces
  • ``CredentialService`` — sign-up, login, validate
  • Sign-up / login / validate API routes
"""
