#!/usr/bin/env python3

import os
import sys
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import time

from peerlink import EventLabel, Session, SessionMode, SessionParams, TickScheduler


def main():
    print("peerlink - Click Demo")
    print("A server and a client in one process; the client sends three clicks")
    print("")

    server = Session(
        SessionMode.SERVER,
        SessionParams(port=0, enable_policy_server=False),
    )

    clicks = []
    server.on("click", lambda content, event: clicks.append((event.client.display_name, content)))
    server.start()

    server_ticks = TickScheduler(server, tick_rate=60)
    server_ticks.start()

    client = Session(SessionMode.CLIENT, SessionParams(port=server.endpoint.port))
    connected = []
    client.add_listener(EventLabel.CONNECTED, connected.append)
    client.start()

    deadline = time.monotonic() + 5.0
    while not connected and time.monotonic() < deadline:
        client.pump()
        time.sleep(0.01)

    for x, y in ((10, 30), (12, 28), (40, 2)):
        client.trigger("click", {'x': x, 'y': y})

    while len(clicks) < 3 and time.monotonic() < deadline:
        client.pump()
        time.sleep(0.01)

    for sender, content in clicks:
        print(f"{sender} clicked at ({content['x']}, {content['y']})")

    client.stop()
    server_ticks.stop()
    server.stop()

    stats = server_ticks.get_statistics()
    print("")
    print(f"Server ticks: {stats['ticks']}, mean tick {stats['mean_tick_seconds'] * 1000:.3f} ms")


if __name__ == "__main__":
    main()
