import socket

import uvicorn

from authgate.core.config import settings


def get_lan_ip():
    try:
        # Connect to a public DNS server to determine the route
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


def main():
    lan_ip = get_lan_ip()
    port = settings.PORT

    print("\n" + "=" * 60)
    print(f"SERVER STARTING: {settings.APP_NAME}")
    print(f"LAN URL:  http://{lan_ip}:{port}")
    print(f"Local:    http://127.0.0.1:{port}")
    print("-" * 60)
    print(f"Idle timeout:   {settings.INACTIVITY_TIMEOUT_MS // 60000} min")
    print(f"Sweep interval: {settings.CLEANUP_INTERVAL_MS // 60000} min")
    print("=" * 60 + "\n")

    # Single worker: sessions live in this process's memory
    uvicorn.run(
        "authgate.main:app",
        host=settings.HOST,
        port=port,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
