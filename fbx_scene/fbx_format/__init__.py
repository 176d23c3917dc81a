"""FBX node stream: property cells, events, errors and the loader protocol."""
