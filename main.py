#!/usr/bin/env python3

import sys
import time

from peerlink.core.data.data_structures import SessionParams
from peerlink.core.data.net_enums import SessionMode
from peerlink.core.events.events import EventLabel
from peerlink.session.config_loader import SessionConfigLoader
from peerlink.session.managers.log_manager import LogManager
from peerlink.session.session import Session


def run_host_loop(session: Session, frame_time: float) -> None:
    """Pump the session once per frame until interrupted or stopped."""
    last_frame = time.time()
    while session.is_running:
        current_time = time.time()
        if current_time - last_frame >= frame_time:
            session.pump()
            last_frame = current_time
        else:
            time.sleep(0.001)


def build_session(mode: SessionMode, params: SessionParams, log_manager: LogManager) -> Session:
    """Create the chat session and wire its listeners."""
    session = Session(mode, params, log_manager=log_manager)

    # Nothing retries a failed bind or connect, so end the host loop
    session.add_listener(EventLabel.INIT_FAILURE, lambda event: session.stop())

    if mode == SessionMode.SERVER:
        session.on("chat", lambda content, event: session.trigger("chat", content))
        session.add_listener(
            EventLabel.CONNECTED,
            lambda event: session.trigger_to(event.client, "welcome", {'clients': len(session.clients)}),
        )
    else:
        session.on("chat", lambda content, event: print(f"chat: {content}"))
        session.on("welcome", lambda content, event: session.trigger("chat", {'text': "hello"}))

    return session


def main():
    config_path = sys.argv[1] if len(sys.argv) > 1 else None

    loader = SessionConfigLoader(config_path)
    loaded = loader.load_config()
    log_manager = loader.create_log_manager(name="peerlink-main")
    if not loaded:
        log_manager.warning(f"No session config at {loader.config_path}, using defaults")

    params = loader.get_params()
    session = build_session(loader.get_mode(), params, log_manager)
    session.start()

    try:
        run_host_loop(session, params.tick_interval)
    except KeyboardInterrupt:
        print("\n\nSession interrupted by user")
    finally:
        session.stop()
        session.pump()
        print("\n\nSession closed")


if __name__ == "__main__":
    main()
