"""Services: persistence, storage, approvals, attachments and file bridging."""
