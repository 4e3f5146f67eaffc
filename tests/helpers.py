from __future__ import annotations

import zipfile
from pathlib import Path


CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{package_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

OPF_XML = """<?xml version="1.0" encoding="UTF-8"?>
<package version="3.0" unique-identifier="BookId" xmlns="http://www.idpf.org/2007/opf">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>Sample Book</dc:title>
    <dc:creator>Sample Author</dc:creator>
  </metadata>
  <manifest>
    <item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>
    <item id="ch1" href="text/ch1.xhtml" media-type="application/xhtml+xml"/>
    <item id="ch2" href="text/ch2.xhtml" media-type="application/xhtml+xml"/>
    <item id="notes" href="text/notes.xhtml" media-type="application/xhtml+xml"/>
    <item id="img1" href="images/one.png" media-type="image/png"/>
  </manifest>
  <spine>
    <itemref idref="ch1"/>
    <itemref idref="notes" linear="no"/>
    <itemref idref="ch2" linear="yes"/>
  </spine>
</package>
"""

NAV_XHTML = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
  <head><title>Contents</title></head>
  <body>
    <nav epub:type="toc">
      <ol>
        <li><a href="text/ch1.xhtml">Chapter One</a></li>
        <li><a href="text/ch2.xhtml#start">Chapter Two</a></li>
      </ol>
    </nav>
  </body>
</html>
"""

CH1_XHTML = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>Chapter One</title><style>p { color: red; }</style></head>
  <body>
    <h1>Chapter One</h1>
    <p>Hello <b>bold <i>both</i></b> plain</p>
    <p>A picture: <img src="../images/one.png" alt="one"/></p>
  </body>
</html>
"""

CH2_XHTML = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <head><title>Chapter Two</title></head>
  <body>
    <h1 id="start">Chapter Two</h1>
    <p>This is the second chapter.</p>
  </body>
</html>
"""

NOTES_XHTML = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
  <body><p>Notes</p></body>
</html>
"""

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def default_entries() -> dict[str, str | bytes]:
    return {
        "META-INF/container.xml": CONTAINER_XML.format(package_path="OEBPS/content.opf"),
        "OEBPS/content.opf": OPF_XML,
        "OEBPS/nav.xhtml": NAV_XHTML,
        "OEBPS/text/ch1.xhtml": CH1_XHTML,
        "OEBPS/text/ch2.xhtml": CH2_XHTML,
        "OEBPS/text/notes.xhtml": NOTES_XHTML,
        "OEBPS/images/one.png": PNG_BYTES,
    }


def write_epub(
    target: Path,
    entries: dict[str, str | bytes],
    mimetype: str | None = "application/epub+zip",
) -> Path:
    with zipfile.ZipFile(target, "w") as zf:
        if mimetype is not None:
            zf.writestr("mimetype", mimetype, compress_type=zipfile.ZIP_STORED)
        for name, data in entries.items():
            zf.writestr(name, data, compress_type=zipfile.ZIP_DEFLATED)
    return target


