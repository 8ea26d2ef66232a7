"""FTP reply codes (RFC 959) and their descriptions."""

STATUS_INITIATING = 100
STATUS_RESTART_MARKER = 110
STATUS_READY_MINUTE = 120
STATUS_ALREADY_OPEN = 125
STATUS_ABOUT_TO_SEND = 150

STATUS_COMMAND_OK = 200
STATUS_COMMAND_NOT_IMPLEMENTED = 202
STATUS_SYSTEM = 211
STATUS_DIRECTORY = 212
STATUS_FILE = 213
STATUS_HELP = 214
STATUS_NAME = 215
STATUS_READY = 220
STATUS_CLOSING = 221
STATUS_DATA_CONNECTION_OPEN = 225
STATUS_CLOSING_DATA_CONNECTION = 226
STATUS_PASSIVE_MODE = 227
STATUS_LONG_PASSIVE_MODE = 228
STATUS_EXTENDED_PASSIVE_MODE = 229
STATUS_LOGGED_IN = 230
STATUS_LOGGED_OUT = 231
STATUS_LOGOUT_ACK = 232
STATUS_AUTH_OK = 234
STATUS_REQUESTED_FILE_ACTION_OK = 250
STATUS_PATH_CREATED = 257

STATUS_USER_OK = 331
STATUS_LOGIN_NEED_ACCOUNT = 332
STATUS_REQUEST_FILE_PENDING = 350

STATUS_NOT_AVAILABLE = 421
STATUS_CAN_NOT_OPEN_DATA_CONNECTION = 425
STATUS_TRANSFER_ABORTED = 426
STATUS_INVALID_CREDENTIALS = 430
STATUS_HOST_UNAVAILABLE = 434
STATUS_FILE_ACTION_IGNORED = 450
STATUS_ACTION_ABORTED = 451
STATUS_INSUFFICIENT_STORAGE = 452

STATUS_BAD_COMMAND = 500
STATUS_BAD_ARGUMENTS = 501
STATUS_NOT_IMPLEMENTED = 502
STATUS_BAD_SEQUENCE = 503
STATUS_NOT_IMPLEMENTED_PARAMETER = 504
STATUS_NOT_LOGGED_IN = 530
STATUS_STOR_NEED_ACCOUNT = 532
STATUS_FILE_UNAVAILABLE = 550
STATUS_PAGE_TYPE_UNKNOWN = 551
STATUS_EXCEEDED_STORAGE = 552
STATUS_BAD_FILE_NAME = 553

_STATUS_TEXT = {
    STATUS_COMMAND_OK: "Command okay.",
    STATUS_COMMAND_NOT_IMPLEMENTED: "Command not implemented, superfluous at this site.",
    STATUS_SYSTEM: "System status, or system help reply.",
    STATUS_DIRECTORY: "Directory status.",
    STATUS_FILE: "File status.",
    STATUS_HELP: "Help message.",
    STATUS_NAME: "",
    STATUS_READY: "Service ready for new user.",
    STATUS_CLOSING: "Service closing control connection.",
    STATUS_DATA_CONNECTION_OPEN: "Data connection open; no transfer in progress.",
    STATUS_CLOSING_DATA_CONNECTION: "Closing data connection. Requested file action successful.",
    STATUS_PASSIVE_MODE: "Entering Passive Mode.",
    STATUS_LONG_PASSIVE_MODE: "Entering Long Passive Mode.",
    STATUS_EXTENDED_PASSIVE_MODE: "Entering Extended Passive Mode.",
    STATUS_LOGGED_IN: "User logged in, proceed.",
    STATUS_LOGGED_OUT: "User logged out; service terminated.",
    STATUS_LOGOUT_ACK: "Logout command noted, will complete when transfer done.",
    STATUS_AUTH_OK: "AUTH command OK",
    STATUS_REQUESTED_FILE_ACTION_OK: "Requested file action okay, completed.",
    STATUS_PATH_CREATED: "Path created.",
    STATUS_USER_OK: "User name okay, need password.",
    STATUS_LOGIN_NEED_ACCOUNT: "Need account for login.",
    STATUS_REQUEST_FILE_PENDING: "Requested file action pending further information.",
    STATUS_NOT_AVAILABLE: "Service not available, closing control connection.",
    STATUS_CAN_NOT_OPEN_DATA_CONNECTION: "Can't open data connection.",
    STATUS_TRANSFER_ABORTED: "Connection closed; transfer aborted.",
    STATUS_INVALID_CREDENTIALS: "Invalid username or password.",
    STATUS_HOST_UNAVAILABLE: "Requested host unavailable.",
    STATUS_FILE_ACTION_IGNORED: "Requested file action not taken.",
    STATUS_ACTION_ABORTED: "Requested action aborted. Local error in processing.",
    STATUS_INSUFFICIENT_STORAGE: "Insufficient storage space in system.",
    STATUS_BAD_COMMAND: "Command unrecognized.",
    STATUS_BAD_ARGUMENTS: "Syntax error in parameters or arguments.",
    STATUS_NOT_IMPLEMENTED: "Command not implemented.",
    STATUS_BAD_SEQUENCE: "Bad sequence of commands.",
    STATUS_NOT_IMPLEMENTED_PARAMETER: "Command not implemented for that parameter.",
    STATUS_NOT_LOGGED_IN: "Not logged in.",
    STATUS_STOR_NEED_ACCOUNT: "Need account for storing files.",
    STATUS_FILE_UNAVAILABLE: "File unavailable.",
    STATUS_PAGE_TYPE_UNKNOWN: "Page type unknown.",
    STATUS_EXCEEDED_STORAGE: "Exceeded storage allocation.",
    STATUS_BAD_FILE_NAME: "File name not allowed.",
}


def status_text(code: int) -> str:
    """Return the description of an FTP reply code."""
    try:
        return _STATUS_TEXT[code]
    except KeyError:
        return f"Unknown status code: {code}"