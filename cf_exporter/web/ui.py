from html import escape

HTML = """<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <title>Cloud Foundry Exporter</title>
</head>
<body>
  <h1>Cloud Foundry Exporter</h1>
  <p>version {version}</p>
  <p><a href="{path}">Metrics</a></p>
</body>
</html>
"""


def render_html(metrics_path: str, version: str) -> str:
    return HTML.format(path=escape(metrics_path, quote=True), version=escape(version))
