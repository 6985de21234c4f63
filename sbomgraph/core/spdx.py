"""Maps free-text license names and well-known license URLs to SPDX identifiers."""
import re

# (required substrings, SPDX id); first match wins, so more specific rows come first
NAME_TABLE: list[tuple[tuple[str, ...], str]] = [
    (('apache', '2.0'), 'Apache-2.0'),
    (('apache', '1.1'), 'Apache-1.1'),
    (('lgpl', '3'), 'LGPL-3.0-or-later'),
    (('lesser general public license', '3'), 'LGPL-3.0-or-later'),
    (('lgpl', '2.1'), 'LGPL-2.1-or-later'),
    (('lesser general public license', '2.1'), 'LGPL-2.1-or-later'),
    (('gpl', '3.0'), 'GPL-3.0-or-later'),
    (('general public license', '3'), 'GPL-3.0-or-later'),
    (('gpl', '2.0'), 'GPL-2.0-or-later'),
    (('general public license', '2'), 'GPL-2.0-or-later'),
    (('eclipse public license', '2.0'), 'EPL-2.0'),
    (('epl', '2.0'), 'EPL-2.0'),
    (('eclipse public license', '1.0'), 'EPL-1.0'),
    (('epl', '1.0'), 'EPL-1.0'),
    (('mozilla public license', '2.0'), 'MPL-2.0'),
    (('mpl', '2.0'), 'MPL-2.0'),
    (('bsd', '3-clause'), 'BSD-3-Clause'),
    (('bsd', '2-clause'), 'BSD-2-Clause'),
    (('bsd',), 'BSD-3-Clause'),
    (('unlicense',), 'Unlicense'),
    (('cddl',), 'CDDL-1.0'),
    (('public domain',), 'CC0-1.0'),
]

WORD_TABLE: list[tuple[re.Pattern, str]] = [
    (re.compile(r'\bmit\b'), 'MIT'),
    (re.compile(r'\bisc\b'), 'ISC'),
]

URL_TABLE: list[tuple[str, str]] = [
    ('apache.org/licenses/license-2.0', 'Apache-2.0'),
    ('opensource.org/licenses/apache-2.0', 'Apache-2.0'),
    ('opensource.org/licenses/mit', 'MIT'),
    ('opensource.org/licenses/bsd-3-clause', 'BSD-3-Clause'),
    ('opensource.org/licenses/bsd-license', 'BSD-2-Clause'),
    ('opensource.org/licenses/bsd-2-clause', 'BSD-2-Clause'),
    ('gnu.org/licenses/lgpl-3.0', 'LGPL-3.0-or-later'),
    ('gnu.org/licenses/old-licenses/lgpl-2.1', 'LGPL-2.1-or-later'),
    ('gnu.org/licenses/gpl-3.0', 'GPL-3.0-or-later'),
    ('gnu.org/licenses/old-licenses/gpl-2.0', 'GPL-2.0-or-later'),
    ('eclipse.org/legal/epl-2.0', 'EPL-2.0'),
    ('eclipse.org/legal/epl-v20', 'EPL-2.0'),
    ('eclipse.org/legal/epl-v10', 'EPL-1.0'),
    ('mozilla.org/mpl/2.0', 'MPL-2.0'),
    ('creativecommons.org/publicdomain/zero/1.0', 'CC0-1.0'),
]


def spdx_id_from_name(name: str | None) -> str | None:
    if not name:
        return None
    normalized = name.lower().strip()
    for needles, spdx_id in NAME_TABLE:
        if all(needle in normalized for needle in needles):
            return spdx_id
    for pattern, spdx_id in WORD_TABLE:
        if pattern.search(normalized):
            return spdx_id
    return None


def spdx_id_from_url(url: str | None) -> str | None:
    if not url:
        return None
    normalized = url.lower().strip()
    for needle, spdx_id in URL_TABLE:
        if needle in normalized:
            return spdx_id
    return None


def normalize_license(name: str | None, url: str | None = None) -> str | None:
    """
    Canonical identifier for a declared license.

    Name table first, then URL table, then the raw name verbatim.
    Returns None when there is nothing to identify.
    """
    name = name.strip() if name else None
    return spdx_id_from_name(name) or spdx_id_from_url(url) or name or None
