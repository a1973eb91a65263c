# Almanac
# Copyright (C) 2024-2026 The Almanac contributors
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; version 3
# of the License or (at your option) any later version of
# the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston,
# MA  02110-1301, USA.

"""Engine settings file.
"""

import configparser

FILENAME = ".almanac"

DEFAULTS = {
    "expansion": {"max_instances": "1000"},
    "views": {"week_start": "0"},
    "layout": {"pixels_per_hour": "60", "minimum_height": "20"},
    "export": {
        "product_id": "-//Almanac//Calendar//EN",
        "uid_domain": "almanac.app",
        "attendee_domain": "almanac.local",
    },
}


class EngineSettings(object):
    """Settings for expansion, layout and export.

    Every option has a built-in default, so an empty file is valid.
    """

    def __init__(self, cp=None):
        if cp is None:
            cp = configparser.ConfigParser()
        self._configparser = cp

    @classmethod
    def from_file(cls, f):
        cp = configparser.ConfigParser()
        cp.read_file(f)
        return cls(cp)

    def _get(self, section, option):
        return self._configparser.get(
            section, option, fallback=DEFAULTS[section][option]
        )

    def _set(self, section, option, value):
        try:
            self._configparser.add_section(section)
        except configparser.DuplicateSectionError:
            pass
        if value is None:
            self._configparser.remove_option(section, option)
        else:
            self._configparser[section][option] = str(value)

    def write(self, f):
        self._configparser.write(f)

    def get_max_instances(self):
        value = int(self._get("expansion", "max_instances"))
        if value < 1:
            raise ValueError(f"max_instances must be positive, not {value}")
        return value

    def set_max_instances(self, max_instances):
        self._set("expansion", "max_instances", max_instances)

    def get_week_start(self):
        value = int(self._get("views", "week_start"))
        if value not in (0, 1):
            raise ValueError(f"week_start must be 0 or 1, not {value}")
        return value

    def set_week_start(self, week_start):
        self._set("views", "week_start", week_start)

    def get_pixels_per_hour(self):
        return float(self._get("layout", "pixels_per_hour"))

    def get_minimum_height(self):
        return float(self._get("layout", "minimum_height"))

    def get_product_id(self):
        return self._get("export", "product_id")

    def get_uid_domain(self):
        return self._get("export", "uid_domain")

    def set_uid_domain(self, uid_domain):
        self._set("export", "uid_domain", uid_domain)

    def get_attendee_domain(self):
        return self._get("export", "attendee_domain")
