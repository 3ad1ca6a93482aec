"""Infrastructure adapters for otpgate: hashing, tokens, persistence, email and HTTP."""
