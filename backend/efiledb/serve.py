# backend/efiledb/serve.py
"""
Run the API under uvicorn.

  HOST / PORT / RELOAD / LOG_LEVEL / WEB_CONCURRENCY
  SSL_CERTFILE, SSL_KEYFILE, SSL_CA_CERTS, SSL_KEYFILE_PASSWORD  (optional TLS)
"""

import os
from typing import Dict

import uvicorn

_SSL_ENV = {
    "SSL_CERTFILE": "ssl_certfile",
    "SSL_KEYFILE": "ssl_keyfile",
    "SSL_CA_CERTS": "ssl_ca_certs",
    "SSL_KEYFILE_PASSWORD": "ssl_keyfile_password",
}


def _truthy(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def tls_options() -> Dict[str, str]:
    options = {}
    for env_name, option in _SSL_ENV.items():
        value = os.getenv(env_name)
        if value:
            options[option] = value
    if options and "ssl_certfile" not in options:
        raise RuntimeError("SSL_CERTFILE is required when TLS options are set")
    return options


def main() -> None:
    reload_enabled = _truthy("RELOAD")
    uvicorn.run(
        "efiledb.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload_enabled,
        workers=None if reload_enabled else int(os.getenv("WEB_CONCURRENCY", "1")),
        log_level=os.getenv("LOG_LEVEL", "info"),
        proxy_headers=True,
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "*"),
        **tls_options(),
    )


if __name__ == "__main__":
    main()
