import html

REPORT_STYLESHEET = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6; color: #333; }
h1, h2, h3 { margin-bottom: 0.5em; margin-top: 1.5em; color: #110927; }
h1 { font-size: 24px; text-align: center; border-bottom: 2px solid #130830; padding-bottom: 10px; margin-bottom: 25px; }
h2 { font-size: 20px; border-bottom: 1px solid #eee; padding-bottom: 5px; margin-bottom: 15px; }
h3 { font-size: 16px; }
p { margin-bottom: 1em; }
ul, ol { margin-left: 20px; margin-bottom: 1em; }
li { margin-bottom: 0.5em; }
table { width: 100%; border-collapse: collapse; margin-top: 1em; margin-bottom: 1em; }
th, td { border: 1px solid #ddd; padding: 10px 12px; text-align: left; vertical-align: top; }
th { background-color: #f8f8f8; font-weight: bold; color: #100926; }
pre { background-color: #f5f5f5; padding: 10px; border: 1px solid #eee; font-family: 'Courier New', Courier, monospace; }
"""


def wrap_in_template(body_markup: str, title: str = "Report") -> str:
    """Place report body markup inside the fixed presentation template."""
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '<meta charset="UTF-8">\n'
        f"<title>{html.escape(title)}</title>\n"
        f"<style>{REPORT_STYLESHEET}</style>\n"
        "</head>\n<body>\n"
        f"{body_markup}\n"
        "</body>\n</html>\n"
    )
