import os
import subprocess
import sys
import time
import webbrowser
from pathlib import Path

HOST = os.environ.get("FLASHCARD_HOST", "127.0.0.1")
PORT = os.environ.get("FLASHCARD_PORT", "8000")


def find_interpreter() -> str:
    """Prefers the project's .venv interpreter, falling back to the one running this script."""
    bin_dir = "Scripts" if sys.platform == "win32" else "bin"
    exe = "python.exe" if sys.platform == "win32" else "python"
    candidate = Path(".venv") / bin_dir / exe
    if candidate.exists():
        return str(candidate)
    print(f"No project interpreter at {candidate}, using {sys.executable}")
    return sys.executable


def main():
    cmd = [find_interpreter(), "-m", "uvicorn", "flashstudy.main:app", "--host", HOST, "--port", PORT]
    print(f"Launching flashcard API on {HOST}:{PORT}")
    print(" ".join(cmd))

    server = None
    try:
        server = subprocess.Popen(cmd)
        # uvicorn needs a moment before it accepts connections
        time.sleep(2)
        webbrowser.open(f"http://{HOST}:{PORT}/docs")
        print("Interactive docs opened in the browser. Ctrl+C shuts the server down.")
        server.wait()
    except KeyboardInterrupt:
        print("\nShutting down flashcard API")
        if server is not None:
            server.terminate()
    except OSError as e:
        print(f"Could not launch uvicorn: {e}")
        if server is not None:
            server.terminate()


if __name__ == "__main__":
    main()
