r"""certprobe -- TLS certificate probe following the Nagios plugin contract.

Connects to a service directly over TLS or through a STARTTLS upgrade (SMTP,
POP3, FTP, IMAP, LDAP), verifies the chain and the peer name, optionally
checks OCSP revocation status, and reports the days left until the
certificate expires as OK/WARNING/CRITICAL/UNKNOWN plus performance data.

Imports flow strictly downward:

```text
            __main__            Command-line interface
               |
              tls               Strategies, establisher, extraction, OCSP
            /     \
     protocols   utils          STARTTLS preambles, deadline, HTTP
            \     /
              core              Exceptions, logging, config, thresholds, output
               |
             models             Pure data (zero I/O)
```

Examples:
    ```python
    from certprobe.core import load_request, render
    from certprobe.tls import run_probe

    request = load_request({"host": "example.com", "warn_days": 30, "crit_days": 14})
    print(render(await run_probe(request)))
    ```
"""

from importlib.metadata import version as _get_version


__version__ = _get_version("certprobe")

__all__ = ["__version__"]
