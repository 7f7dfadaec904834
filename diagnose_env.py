"""
Diagnostic script to check .env loading, storage and font configuration.
Run this to troubleshoot environment variable issues before starting the server.
"""

import os
import sys
from pathlib import Path

print("\n" + "="*70)
print("🔍 ENVIRONMENT DIAGNOSTICS")
print("="*70 + "\n")

# 1. Check Python version
print(f"1. Python Version: {sys.version}")
print()

# 2. Check .env file
env_path = Path(__file__).parent / ".env"
print(f"2. .env File Location: {env_path}")
print(f"   Exists: {env_path.exists()}")

if env_path.exists():
    from dotenv import load_dotenv

    result = load_dotenv(dotenv_path=env_path, override=True)
    print(f"   Loaded: {result}")
print()

# 3. Effective settings
print("3. Effective Settings:")
SETTINGS = [
    ("LOG_LEVEL", "INFO"),
    ("OG_STORAGE_MODE", "local"),
    ("OG_STORAGE_DIR", "storage"),
    ("OG_PUBLIC_BASE_URL", "http://localhost:8000"),
    ("OG_S3_BUCKET", "og-previews"),
    ("OG_S3_ENDPOINT", ""),
    ("OG_S3_PUBLIC_BASE", ""),
    ("OG_S3_REGION", "us-east-1"),
    ("OG_FETCH_TIMEOUT_S", "10"),
    ("OG_FETCH_MAX_BYTES", str(10 * 1024 * 1024)),
    ("OG_BRAND_LABEL", "Your Brand"),
    ("OG_FONT_PATH", ""),
    ("OG_BOLD_FONT_PATH", ""),
    ("OG_CORS_ALLOW_ORIGINS", "*"),
]
for name, default in SETTINGS:
    value = os.environ.get(name)
    source = "env" if value is not None else "default"
    print(f"   {name} = {value if value is not None else default!r} ({source})")
for secret in ("OG_S3_ACCESS_KEY", "OG_S3_SECRET_KEY"):
    print(f"   {secret}: {'set' if os.environ.get(secret) else 'not set'}")
print()

# 4. Fonts
print("4. Fonts:")
from og_preview.services.compositor import load_font  # noqa: E402

for bold in (False, True):
    font, real = load_font(30, bold=bold)
    label = "bold" if bold else "regular"
    name = " ".join(font.getname()) if hasattr(font, "getname") else type(font).__name__
    print(f"   {label}: {name}{'' if real or not bold else ' (stroke-emulated)'}")
print()

# 5. Summary
print("="*70)
print("📋 SUMMARY")
print("="*70)

issues = []
mode = os.environ.get("OG_STORAGE_MODE", "local").lower()
if mode not in ("local", "s3"):
    issues.append(f"⚠️  Unknown OG_STORAGE_MODE {mode!r} (falls back to local)")
if mode == "s3" and not os.environ.get("OG_S3_BUCKET"):
    issues.append("⚠️  OG_S3_BUCKET not set (defaults to 'og-previews')")

if not issues:
    print("✅ All checks passed! Configuration looks good.")
else:
    print("Issues found:\n")
    for issue in issues:
        print(f"  {issue}")

print("\nStart the server with:")
print("  uvicorn og_preview.main:app --reload")
print("="*70 + "\n")
