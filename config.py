import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    PORT = int(os.environ.get('PORT', '3001'))
    # Room used when a client does not name a table
    DEFAULT_TABLE_ID = os.environ.get('DEFAULT_TABLE_ID', 'main')
    # Auto-play timer per turn (seconds). 0 disables.
    TURN_TIMEOUT_SEC = int(os.environ.get('TURN_TIMEOUT_SEC', '30'))
    # Pauses before the next deal (seconds)
    ROUND_RESULT_DELAY_SEC = int(os.environ.get('ROUND_RESULT_DELAY_SEC', '3'))
    LOCKED_RESULT_DELAY_SEC = int(os.environ.get('LOCKED_RESULT_DELAY_SEC', '5'))
    # Delay before private hands are sent once a match starts (seconds)
    STATE_DELIVERY_DELAY_SEC = int(os.environ.get('STATE_DELIVERY_DELAY_SEC', '1'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = int(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
    # How long a dropped connection keeps its seat for a rejoinGame (seconds)
    DISCONNECT_GRACE_SEC = float(os.environ.get('DISCONNECT_GRACE_SEC', '0.5'))
