"""FamilyCare web: guardian sign-in, session cookies and OAuth PKCE."""
