# parts/packages
# Package definitions shipped with parts: one module per package, named after
# the package ('-' becomes '_'), each defining a parts.package.Package subclass.
