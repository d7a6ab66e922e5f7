from datetime import datetime, timedelta

from usermgr.relative_time import format_relative_time

NOW = datetime(2024, 3, 15, 14, 30)


def test_never_logged_in():
    assert format_relative_time(None, NOW) == "Jamais"


def test_under_an_hour():
    assert format_relative_time(NOW - timedelta(minutes=59), NOW) == "À l'instant"


def test_hours():
    assert format_relative_time(NOW - timedelta(hours=1), NOW) == "Il y a 1h"
    assert format_relative_time(NOW - timedelta(hours=23, minutes=59), NOW) == "Il y a 23h"


def test_yesterday_covers_the_second_day():
    assert format_relative_time(NOW - timedelta(hours=24), NOW) == "Hier"
    assert format_relative_time(NOW - timedelta(hours=47), NOW) == "Hier"


def test_days():
    assert format_relative_time(NOW - timedelta(days=2), NOW) == "Il y a 2 jours"
    assert format_relative_time(NOW - timedelta(days=29, hours=23), NOW) == "Il y a 29 jours"


def test_absolute_date_after_thirty_days():
    assert format_relative_time(datetime(2024, 1, 5, 9, 0), NOW) == "05/01/2024"
