"""telety -- interactive shell sessions mirrored to a remote channel.

A local user drives their own shell through a line-oriented prompt while
every executed input is posted to a telety.io channel. In join mode the
same prompt also listens on the channel's push socket and surfaces remote
messages in the recall history.
"""

__version__ = "0.1.0"
