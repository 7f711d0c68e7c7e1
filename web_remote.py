#!/usr/bin/env python3
"""
web_remote.py  –  web keypad + diagnostics

Endpoints
---------
/               → HTML keypad, overlay text, diagnostics, and link to /log
/overlay        → JSON array of overlay text lines
/diag, /data    → JSON object of diagnostic metrics
/action?cmd=…   → inject control commands (key, hold, enter, travel, return, toggle, quit)
/log            → contents of runtime.log (if present)

Everything arrives in the main loop through EventManager, so the poll loop
stays the only writer of the clock state.
"""

from __future__ import annotations
import http.server
import socketserver
import threading
import urllib.parse
import json
import logging
import time
import os
import traceback
import psutil
import platform
from typing import TYPE_CHECKING, Any

from events   import EventManager
from overlays import overlay_lines
import config

if TYPE_CHECKING:                       # avoid circular import at runtime
    from app import TimeCircuits

log = logging.getLogger(__name__)

LOG_FILE = "runtime.log"

# ── diagnostics refresh cadence ───────────────────────────────────────────
_last_diag_time = 0.0
_diag_interval  = getattr(config, "DIAG_REFRESH_INTERVAL", 1.0)

# ── global diagnostic store ───────────────────────────────────────────────
monitor_data: dict[str, Any] = {
    "cpu_percent":       0.0,
    "cpu_per_core":      [],
    "mem_used":          "0 MB",
    "mem_total":         "0 MB",
    "disk_root":         "0%",
    "script_uptime":     "0d 00:00:00",
    "machine_uptime":    "0d 00:00:00",
    "load_avg":          "",
    "last_http_crash":   "",
    "python_version":    platform.python_version(),
}

_script_start = time.monotonic()
_boot_time    = psutil.boot_time()


# ── helpers ────────────────────────────────────────────────────────────────
def _fmt_duration(secs: float) -> str:
    d, rem = divmod(int(secs), 86400)
    h, rem = divmod(rem, 3600)
    m, s   = divmod(rem, 60)
    return f"{d}d {h:02}:{m:02}:{s:02}"


def _maybe_update_diagnostics() -> None:
    global _last_diag_time
    now = time.monotonic()
    if now - _last_diag_time >= _diag_interval:
        _last_diag_time = now
        _update_diagnostics()


def _update_diagnostics() -> None:
    """Refresh CPU, memory, disk, uptime, load in `monitor_data`."""
    per_core = psutil.cpu_percent(percpu=True)
    avg_cpu  = sum(per_core) / len(per_core) if per_core else 0.0
    monitor_data["cpu_percent"]  = round(avg_cpu, 1)
    monitor_data["cpu_per_core"] = [round(p, 1) for p in per_core]
    vm = psutil.virtual_memory()
    monitor_data["mem_used"]  = f"{vm.used // 1024**2} MB"
    monitor_data["mem_total"] = f"{vm.total // 1024**2} MB"
    du = psutil.disk_usage("/")
    monitor_data["disk_root"] = f"{du.percent}%"
    now = time.monotonic()
    monitor_data["script_uptime"]  = _fmt_duration(now - _script_start)
    monitor_data["machine_uptime"] = _fmt_duration(time.time() - _boot_time)
    try:
        la = os.getloadavg()
        monitor_data["load_avg"] = ", ".join(f"{x:.2f}" for x in la)
    except OSError:
        monitor_data["load_avg"] = "N/A"


def action_for(qs: dict[str, list[str]]) -> dict | None:
    """Map /action query parameters to an EventManager action (None: bad request)."""
    cmd = qs.get("cmd", [""])[0]
    key = qs.get("k", [""])[0]

    if cmd in ("key", "hold"):
        if len(key) != 1 or not key.isdigit():
            return None
        return {"type": cmd, "key": key}
    simple = {
        "enter":  "enter",
        "travel": "travel",
        "return": "return",
        "toggle": "toggle_overlay",
        "quit":   "quit",
    }
    if cmd in simple:
        return {"type": simple[cmd]}
    return None


# ── reusable threaded HTTP server ──────────────────────────────────────────
class ReusableTCPServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    daemon_threads      = True
    allow_reuse_address = True


# ── request handler ────────────────────────────────────────────────────────
class RemoteHandler(http.server.BaseHTTPRequestHandler):
    def log_message(self, *args):
        return  # silence default logging

    def do_GET(self):
        parsed = urllib.parse.urlparse(self.path)
        path, qs = parsed.path, parsed.query

        if path == "/":
            return self._serve_html()
        if path == "/overlay":
            return self._serve_json(overlay_lines(self.server.tc.state))   # type: ignore
        if path in ("/diag", "/data"):
            _maybe_update_diagnostics()
            return self._serve_json(monitor_data)
        if path == "/log":
            return self._serve_log()
        if path == "/action":
            return self._serve_action(qs)

        self.send_error(404, "Not found")

    # ── helpers for each route ───────────────────────────────────────────
    def _serve_html(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(HTML_PAGE.encode("utf-8"))

    def _serve_json(self, obj: Any):
        b = json.dumps(obj).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(b)))
        self.end_headers()
        self.wfile.write(b)

    def _serve_log(self):
        try:
            with open(LOG_FILE, "rb") as f:
                data = f.read()
        except OSError:
            return self.send_error(404, "Log file not found")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _serve_action(self, query: str):
        act = action_for(urllib.parse.parse_qs(query))
        if act is None:
            return self.send_error(400, "Unknown cmd")
        EventManager.post(act)
        self.send_response(204)
        self.end_headers()


# ── simple HTML UI ─────────────────────────────────────────────────────────
HTML_PAGE = """
<!doctype html><html><head><meta charset="utf-8">
<title>Time Circuits Remote</title>
<style>
 body{background:#000;color:#f80;font-family:monospace;padding:1em;}
 button{margin:4px;padding:10px 16px;border:1px solid #f80;background:#000;
        color:#f80;font-family:monospace;font-size:1.2em;}
 .pad{display:grid;grid-template-columns:repeat(3,4em);}
 pre{margin:0.5em 0;font-family:monospace;}
</style></head><body>
<h2>Time Circuits Remote</h2>
<div class="pad" id="pad"></div>
<label><input type="checkbox" id="hold"> hold</label>
<div>
<button onclick="act('cmd=enter')">ENTER</button>
<button onclick="act('cmd=travel')">Time travel</button>
<button onclick="act('cmd=return')">Return</button>
<button onclick="act('cmd=toggle')">Toggle overlay</button>
<button onclick="act('cmd=quit')">Quit</button>
<a href="/log" style="color:#f80">View log</a>
</div>

<div><h3>Overlay</h3><pre id="overlay"></pre></div>
<div><h3>Diagnostics</h3><pre id="diag"></pre></div>

<script>
 function act(q){ fetch('/action?' + q); }
 for (const k of ['1','2','3','4','5','6','7','8','9','','0','']) {
   const b = document.createElement('button');
   b.textContent = k;
   if (k) b.onclick = () => act((document.getElementById('hold').checked ? 'cmd=hold' : 'cmd=key') + '&k=' + k);
   else b.disabled = true;
   document.getElementById('pad').appendChild(b);
 }
 async function refreshUI(){
   try {
     let o  = await fetch('/overlay'); let ov = await o.json();
     document.getElementById('overlay').textContent = ov.join('\\n');
     let d  = await fetch('/diag');    let dg = await d.json();
     let txt = '';
     for (let [k,v] of Object.entries(dg)){
       txt += k.padEnd(20,' ') + v + '\\n';
     }
     document.getElementById('diag').textContent = txt;
   } catch(e){
     console.error(e);
   }
 }
 setInterval(refreshUI, 500);
 refreshUI();
</script>
</body></html>
"""


# ── server bootstrap with auto-restart ────────────────────────────────────
def start(tc: "TimeCircuits", port: int = getattr(config, "WEB_PORT", 8080)):
    def _serve_loop():
        while True:
            try:
                with ReusableTCPServer(("", port), RemoteHandler) as httpd:
                    httpd.tc = tc
                    httpd.serve_forever()
            except Exception:
                log.exception("web remote crashed, restarting")
                monitor_data["last_http_crash"] = traceback.format_exc()
                time.sleep(1)

    threading.Thread(target=_serve_loop, daemon=True).start()
    log.info("Web remote & diagnostics listening on port %d", port)
