"""Operations layered on the resolver and retry wrapper."""
