class JobError(Exception):
    """A notification job could not load its work set and did nothing."""
