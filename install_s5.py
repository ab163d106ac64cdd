#!/usr/bin/env python3
from soxprov.command import main


"""
@see: https://github.com/ginuerzh/gost
@see: https://github.com/ginuerzh/gost/releases
@see: https://www.freedesktop.org/software/systemd/man/systemd.service.html
@see: https://firewalld.org/documentation/man-pages/firewall-cmd.html
@see: https://manpages.ubuntu.com/manpages/jammy/man8/ufw.8.html
@see: https://psutil.readthedocs.io/en/latest/#psutil.net_connections
"""
if __name__ == '__main__':
    main()
