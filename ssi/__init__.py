"""Self-sovereign identity: did:lac1 codec and resolver"""
