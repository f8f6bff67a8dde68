# slate-html-pipeline — Services
# Document model services; side effects only through injected ports
