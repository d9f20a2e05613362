"""
hash-trend: block synchronization and sampling engine for the TRON chain.

Fetched blocks live in a bounded store, kept current by a live poller and
filled backwards by a rule-aligned backfill. Views sample the store by rule
and lay the result out as a bead plate.
"""
