"""Resolution core: criteria, audits, reachability, propagation, reports, suggestions."""
