# iptv_sync/forms.py
from flask_wtf import FlaskForm
from wtforms import StringField, SubmitField, URLField, SelectField, PasswordField
from wtforms.validators import DataRequired, Optional, URL, Length

INTERVAL_CHOICES = [
    (1, '1h'), (3, '3h'), (6, '6h'), (12, '12h'),
    (24, '24h (Daily)'), (48, '48h'), (168, '168h (Weekly)')
]

class PlaylistForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired(), Length(min=1, max=255)])
    url = URLField('M3U Playlist URL', validators=[DataRequired(), URL()])
    epg_url = URLField('EPG XMLTV URL', validators=[Optional(), URL()])
    interval = SelectField('Refresh Interval', choices=INTERVAL_CHOICES, coerce=int, default=24)
    submit = SubmitField('Add Playlist')

class XtreamPlaylistForm(FlaskForm):
    """Xtream Codes account: server address plus credentials."""
    name = StringField('Name', validators=[DataRequired(), Length(min=1, max=255)])
    server = URLField('Server URL', validators=[DataRequired(), URL(require_tld=False)])
    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])
    epg_url = URLField('EPG XMLTV URL', validators=[Optional(), URL()])
    interval = SelectField('Refresh Interval', choices=INTERVAL_CHOICES, coerce=int, default=24)
    submit = SubmitField('Add Xtream Account')

class UpdateIntervalForm(FlaskForm):
    interval = SelectField('Refresh Interval', choices=INTERVAL_CHOICES, coerce=int, validators=[DataRequired()])
    submit = SubmitField('Set')
