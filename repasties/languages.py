"""Languages offered on the submission form. Display only: any tag may be submitted."""

SUPPORTED_LANGUAGES = tuple(sorted([
    "Ruby", "Python", "Javascript", "Bash", "ActionScript",
    "AppleScript", "Awk", "C", "C++", "Clojure",
    "CoffeeScript", "Lisp", "Erlang", "Fortran", "Groovy",
    "Haskell", "Io", "Java", "Lua", "Objective-C",
    "OCaml", "Perl", "Prolog", "Scala", "Smalltalk",
]))
