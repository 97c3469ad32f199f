"""Clients app: the people and companies the studio works for."""
