"""Registry: the on-ledger state for author identities and package names.

The registry provides:
- Records: fixed-layout Author and Package records at derived addresses
- Requests: signed transactions naming the signer roles they require
- Store: the single state machine allowed to create or delete records
"""
