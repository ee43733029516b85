"""
JSON envelopes shared by every resource: {"success": true, "data": ...}
on success and {"success": false, "error", "code", "details"} on failure.
"""


def success_response(data=None, message=None, status_code=200):
    """
    Build a success envelope

    Args:
        data: Payload placed under "data"
        message: Optional human readable message
        status_code: HTTP status code

    Returns:
        tuple: (response_body, status_code)
    """
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body, status_code


def error_response(message, details=None, status_code=400, code=None):
    body = {"success": False, "error": message}
    if code:
        body["code"] = code
    if details is not None:
        body["details"] = details
    return body, status_code


def domain_error_response(error):
    """Envelope for a VibeTrackerError, using the status and code it carries"""
    return error_response(error.message, details=error.details, status_code=error.status_code, code=error.code)
