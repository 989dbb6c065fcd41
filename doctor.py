# doctor.py
# Health check for the PDF Quiz Generator environment.
# Runs checks for: Python, Streamlit, requests, PyMuPDF, and the Ollama server + model.

from __future__ import annotations
import argparse
import importlib
import platform
import sys
from urllib.parse import urljoin

# -----------------------------
# tiny coloring helper (no extra deps)
# -----------------------------
class C:
    G = "\033[92m"  # green
    Y = "\033[93m"  # yellow
    R = "\033[91m"  # red
    B = "\033[94m"  # blue
    D = "\033[0m"   # reset

def line(msg: str = ""):
    print(msg)

def ok(msg: str):
    print(f"{C.G}✅ {msg}{C.D}")

def warn(msg: str):
    print(f"{C.Y}⚠️  {msg}{C.D}")

def bad(msg: str):
    print(f"{C.R}❌ {msg}{C.D}")

def info(msg: str):
    print(f"{C.B}ℹ️  {msg}{C.D}")

# -----------------------------
# utils
# -----------------------------
def import_optional(name: str):
    try:
        return importlib.import_module(name)
    except ImportError:
        return None

def check_python() -> bool:
    line("=== Python ===")
    if sys.version_info < (3, 9):
        bad(f"Python {sys.version.split()[0]} is too old; 3.9+ required.")
        return False
    ok(f"Python: {sys.version.split()[0]} ({sys.executable})")
    return True

def check_package(module: str, pip_name: str) -> bool:
    mod = import_optional(module)
    if not mod:
        bad(f"{pip_name} NOT installed. Try:  python -m pip install {pip_name}")
        return False
    ok(f"{pip_name} import OK (version: {getattr(mod, '__version__', 'unknown')})")
    return True

def check_pymupdf() -> bool:
    line("\n=== PyMuPDF (fitz) ===")
    if not check_package("fitz", "pymupdf"):
        return False
    fitz = import_optional("fitz")
    try:
        fitz.open()  # empty doc
        ok("Basic open/create doc OK")
        return True
    except RuntimeError as e:
        bad(f"PyMuPDF runtime check failed: {e}")
        return False

def tags_url(generate_url: str) -> str:
    return urljoin(generate_url, "/api/tags")

def check_ollama(generate_url: str, model: str, timeout: float = 2.0) -> bool:
    line("\n=== Ollama ===")
    req = import_optional("requests")
    if not req:
        bad("requests not installed; cannot reach Ollama. (Install with: python -m pip install requests)")
        return False
    url = tags_url(generate_url)
    try:
        resp = req.get(url, timeout=timeout)
    except req.RequestException as e:
        bad(f"Ollama not reachable: {e}. Start it with `ollama serve`.")
        return False
    if not resp.ok:
        bad(f"Ollama responded with status {resp.status_code}. Is the daemon running?")
        return False
    try:
        tags = [m.get("name") for m in resp.json().get("models", [])]
    except ValueError:
        tags = []
    ok(f"Ollama reachable at {url} (models: {', '.join(tags) or 'none'})")
    if model not in tags:
        bad(f"Model '{model}' is not pulled. Try:  ollama pull {model}")
        return False
    ok(f"Model '{model}' available")
    return True

def summary(failures: list[str]):
    line("\n=== Summary ===")
    if failures:
        for f in failures:
            bad(f)
        print()
        bad("Environment check FAILED (see items above).")
        sys.exit(1)
    else:
        ok("All critical checks passed. Run:  streamlit run app.py")
        sys.exit(0)

def main(argv: list[str] | None = None):
    from services import llm_client

    parser = argparse.ArgumentParser(description="Environment healthcheck for PDF Quiz Generator")
    parser.add_argument("--model", default=llm_client.DEFAULT_MODEL, help="Ollama model the app will use")
    parser.add_argument("--url", default=llm_client.OLLAMA_URL, help="Ollama generate endpoint")
    parser.add_argument("--no-ollama", action="store_true", help="skip Ollama connectivity check")
    args = parser.parse_args(argv)

    line(f"Doctor 🩺 for PDF Quiz Generator   (Python {sys.version.split()[0]} on {platform.platform()})")
    failures: list[str] = []

    if not check_python():
        failures.append("Python version too old.")

    line("\n=== Packages ===")
    if not check_package("streamlit", "streamlit"):
        failures.append("Streamlit missing.")
    if not check_package("requests", "requests"):
        failures.append("requests missing.")

    if not check_pymupdf():
        failures.append("PyMuPDF (fitz) check failed.")

    if not args.no_ollama and not check_ollama(args.url, args.model):
        failures.append("Ollama server / model not ready.")

    summary(failures)

if __name__ == "__main__":
    main()
